from .auditlog import AuditLog
from .banking import BankAccount, BankTransfer
from .company import Company, EntityMembership
from .contact import Contact
from .obligation import (OBLIGATION_MODELS, Expense, Income,
                         ObligationTransaction, Purchase, Sale)
from .payment import CURRENT_BALANCE, Payment, PaymentAllocation
