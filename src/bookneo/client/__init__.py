# client/__init__.py
from .auth import AuthState, AuthStore
from .checkout import CashfreeCheckout, PaymentOutcome, PaymentRequest
