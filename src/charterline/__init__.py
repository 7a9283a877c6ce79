"""Charterline - boat-charter booking integration.

Provider request signing, the app-store OAuth install flow, hold -> confirm -> pay
booking orchestration and the operator dashboard's booking aggregation.
"""

__version__ = "0.1.0"
