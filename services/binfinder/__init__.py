"""
Bin collection lookup: address parsing, UPRN resolution, dispatch to council
sources, result caching and calendar export.
"""
