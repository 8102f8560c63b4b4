# Categories a caller can branch on
VALIDATION = "validation"
REFERENCE_NOT_FOUND = "reference_not_found"
BUSINESS_RULE = "business_rule"
CONSISTENCY = "consistency"


class LedgerError(Exception):
    """Base for every recoverable, user-facing ledger failure."""
    code = "ledger_error"
    category = BUSINESS_RULE
    default_message = "Ledger operation failed"

    def __init__(self, message=None):
        self.message = message or self.default_message
        super().__init__(self.message)


class InvalidAmount(LedgerError):
    code = "invalid_amount"
    category = VALIDATION
    default_message = "Amount must be greater than 0"


class InvalidInput(LedgerError):
    code = "invalid_input"
    category = VALIDATION
    default_message = "Invalid input"


class PartyNotFound(LedgerError):
    code = "party_not_found"
    category = REFERENCE_NOT_FOUND
    default_message = "Party not found"


class AccountNotFound(LedgerError):
    code = "account_not_found"
    category = REFERENCE_NOT_FOUND
    default_message = "Settlement account not found"


class ObligationNotFound(LedgerError):
    code = "obligation_not_found"
    category = REFERENCE_NOT_FOUND
    default_message = "Obligation record not found"


class SalaryNotFound(LedgerError):
    code = "salary_not_found"
    category = REFERENCE_NOT_FOUND
    default_message = "Salary record not found"


class EntryNotFound(LedgerError):
    code = "entry_not_found"
    category = REFERENCE_NOT_FOUND
    default_message = "Transaction record not found"


class InsufficientBalance(LedgerError):
    code = "insufficient_balance"
    default_message = "Insufficient account balance for this payment"


class DiscountExceedsDue(LedgerError):
    code = "discount_exceeds_due"
    default_message = "Discount exceeds total remaining due"


class PaymentAmountExceedsObligation(LedgerError):
    code = "payment_exceeds_obligation"
    default_message = "Payment amount cannot exceed remaining due"


class NothingToSettle(LedgerError):
    code = "nothing_to_settle"
    default_message = "No open obligation to settle"


class SalaryAlreadyPaid(LedgerError):
    code = "salary_already_paid"
    default_message = "This salary is already paid"


class SettlementEntryLocked(LedgerError):
    code = "settlement_entry_locked"
    default_message = "Settlement transactions can only change through their settlement"


class ConsistencyFailure(LedgerError):
    """Storage failed mid-write; the atomic block has been rolled back."""
    code = "consistency_failure"
    category = CONSISTENCY
    default_message = "Ledger update failed and was rolled back"


class ServiceNotFound(LedgerError):
    code = "service_not_found"
    category = REFERENCE_NOT_FOUND
    default_message = "Service record not found"


class ServiceCancelled(LedgerError):
    code = "service_cancelled"
    default_message = "Cannot deliver a cancelled service"
