# Transaction categories written by the settlement engine
RECEIVABLE_COLLECTION = "Receivable Collection"
PAYABLE_SETTLEMENT = "Payable Settlement"
ADVANCE = "Advance"
SALARY = "Salary"
SETTLEMENT_CATEGORIES = (
    RECEIVABLE_COLLECTION, PAYABLE_SETTLEMENT, ADVANCE, SALARY,
)

# reference_model values stored on Transaction rows
RECEIVABLE = "Receivable"
PAYABLE = "Payable"
SALARY_MODEL = "Salary"

INCOME = "income"
EXPENSE = "expense"

BUSINESSES = ("travel", "isp")
