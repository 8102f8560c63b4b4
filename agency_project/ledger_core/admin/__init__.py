from .account import AccountAdmin
from .actions import pay_selected_salaries, reconcile_selected_balances
from .auditlog import AuditLogAdmin
from .obligation import PayableAdmin, ReceivableAdmin
from .party import CustomerAdmin, VendorAdmin
from .payroll import EmployeeAdmin, SalaryAdmin
from .ReadOnly import ReadOnlyAdmin
from .service import ServiceAdmin
from .transaction import TransactionAdmin
