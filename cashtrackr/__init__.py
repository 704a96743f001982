"""CashTrackr - personal budget tracking backend.

JSON API consumed by the CashTrackr frontend:
- Accounts with email confirmation and password reset (6-digit codes)
- Stateless JWT sessions
- Budgets and their expenses, owned per user
"""

__all__ = ["__version__"]

__version__ = "0.1.0"
