from .balance import (compute_contact_balance, get_contact_balance,
                      get_pending_transactions, refresh_contact_snapshot)
from .payment import (create_payment, delete_payment, get_payment_details,
                      list_payments, update_payment)
from .transactions import soft_delete_transaction, update_transaction_total
from .transfer import (create_bank_transfer, delete_bank_transfer,
                       list_bank_transfers, update_bank_transfer)
