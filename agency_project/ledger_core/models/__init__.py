from .account import Account
from .auditlog import AuditLog
from .customer import Customer
from .obligation import Payable, Receivable
from .payroll import Employee, Salary
from .service import Service
from .transaction import Transaction
from .vendor import Vendor
