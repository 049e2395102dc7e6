# relive_search/application/__init__.py
