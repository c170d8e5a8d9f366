"""
Cashflow Forecast - Source Package

Projects an account's daily balance forward in time and predicts
variable recurring expenses from transaction history.

DESIGN PRINCIPLES:
1. Balances are always derived, never stored
2. One calendar (UTC) for every date comparison
3. Forecasts are pure given the store's current contents
4. Actual transactions always win over forecasts
5. Storage layer is swappable
"""

__version__ = "1.0.0"
__author__ = "Cashflow Forecast Team"
