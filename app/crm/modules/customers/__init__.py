"""
Customers module.

- Customers table (search, login-method and verified filters, pagination)
- Customer detail: profile, transaction history, refunds
- Customer notes
"""
