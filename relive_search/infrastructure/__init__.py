# relive_search/infrastructure/__init__.py
