"""ReliefGuard - fraud, limit and category-balance authorization for aid spending"""

__version__ = "0.1.0"
