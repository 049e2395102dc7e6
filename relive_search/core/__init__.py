# relive_search/core/__init__.py
