"""
Feed Rules Engine: classify incoming feed articles with user-defined rules
"""
__version__ = '0.1'
