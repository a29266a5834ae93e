from .actions import refresh_balances, reverse_payments, reverse_transfers
from .auditlog import AuditLogAdmin
from .banking import BankAccountAdmin, BankTransferAdmin
from .inlines import PaymentAllocationInline
from .ledger import (ContactAdmin, ExpenseAdmin, IncomeAdmin, PaymentAdmin,
                     PaymentAllocationAdmin, PurchaseAdmin, SaleAdmin)
from .membership import CompanyAdmin, EntityMembershipAdmin
from .mixins import TenantAdminMixin
from .ReadOnly import ReadOnlyAdmin
from .forms import ObligationForm
