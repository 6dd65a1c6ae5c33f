"""
Package marker for the product catalog API sources under `src`.
"""
