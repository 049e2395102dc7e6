# relive_search/domain/__init__.py
