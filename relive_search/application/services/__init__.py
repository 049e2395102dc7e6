# relive_search/application/services/__init__.py
