# relive_search/jobs/__init__.py
