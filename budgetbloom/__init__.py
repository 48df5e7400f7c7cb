"""Top‑level package for BudgetBloom.

This file makes the directory a Python package and exposes
convenient names.  The primary modules are:

* ``stores`` – write-through expense and savings goal collections
* ``notifications`` – milestone and spending-pattern alerts
* ``analytics`` – pure aggregation over expenses
* ``session`` – the per-user composition root
* ``app`` – a Streamlit app that ties everything together

To run the app from the command line you can execute:

```bash
streamlit run budgetbloom/app.py
```
"""

from . import analytics  # noqa: F401  # re-exported for convenience
from .models import Expense, Notification, SavingsGoal, User  # noqa: F401
from .session import BudgetSession  # noqa: F401

__all__ = ["analytics", "Expense", "Notification", "SavingsGoal", "User", "BudgetSession"]
