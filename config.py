import os


BASE_DIR = os.path.dirname(os.path.abspath(__file__))

GMAIL_CREDENTIALS_PATH = os.environ.get(
    "GMAIL_CREDENTIALS_PATH", os.path.join(BASE_DIR, "gmail_credentials.json")
)
GMAIL_TOKEN_PATH = os.environ.get(
    "GMAIL_TOKEN_PATH", os.path.join(BASE_DIR, "gmail_tokens.json")
)
# Labels are created and filters written, nothing else
SCOPES = [
    "https://www.googleapis.com/auth/gmail.labels",
    "https://www.googleapis.com/auth/gmail.settings.basic",
]
VERSION = "v1"
USER_ID = "me"

# Reserved tag identifiers of the mail client
IMPORTANT_TAG = "$label1"
DEFAULT_TAG_NAMES = {
    "$label1": "Important",
    "$label2": "Work",
    "$label3": "Personal",
    "$label4": "Todo",
    "$label5": "Later",
}

# Gmail system labels
INBOX_LABEL = "INBOX"
IMPORTANT_LABEL = "IMPORTANT"
SPAM_LABEL = "SPAM"
TRASH_LABEL = "TRASH"
UNREAD_LABEL = "UNREAD"
