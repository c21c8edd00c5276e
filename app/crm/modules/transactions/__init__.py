"""
Transactions module: filterable transactions table and single-transaction view.
"""
