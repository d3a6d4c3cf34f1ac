PET_COLLECTION = "pet"
REQUEST_COLLECTION = "request_form"
USERS_COLLECTION = "users"
REPORTS_COLLECTION = "reports"
PET_REPORTS_COLLECTION = "pet_reports"
ANIMAL_REPORTS_COLLECTION = "animal_reports"
MESSAGES_COLLECTION = "messages"
FEEDBACK_COLLECTION = "feedback"

STATUS_PENDING = "Pending"
STATUS_APPROVED = "Approved"
STATUS_DISAPPROVED = "Disapproved"
REQUEST_STATUSES = (STATUS_PENDING, STATUS_APPROVED, STATUS_DISAPPROVED)

DECISION_APPROVE = "Approve"
DECISION_DISAPPROVE = "Disapprove"
DECISIONS = (DECISION_APPROVE, DECISION_DISAPPROVE)

PET_AVAILABLE = "Available"
PET_ADOPTED = "Adopted"
PET_STATUSES = (PET_AVAILABLE, PET_ADOPTED)

REPORT_MISSING = "Missing"
REPORT_STRAY = "Stray"
REPORT_TYPES = (REPORT_MISSING, REPORT_STRAY)
REPORT_PENDING = "Pending"
REPORT_IN_PROGRESS = "In Progress"
REPORT_RESOLVED = "Resolved"
REPORT_STATUSES = (REPORT_PENDING, REPORT_IN_PROGRESS, REPORT_RESOLVED)

MESSAGE_UNREAD = "unread"
MESSAGE_READ = "read"

CUSTOMER_TYPE = "customer"
