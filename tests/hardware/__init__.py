"""
Hardware test suite: spec catalog, catalog configuration, and GPU
family classification.
"""
