# relive_search/application/use_cases/__init__.py
