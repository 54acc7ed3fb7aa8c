"""
Default settings for the order processor load test.
"""

# Web client endpoint of the application server
# Can be overridden by the settings file
SERVICE_URL = "https://localhost/BC/"

# Authentication
# True = log in with the current Windows account (integrated authentication)
# False = log in with USER_NAME / PASSWORD from the settings file
USE_WINDOWS_AUTHENTICATION = False

# Accept self-signed or otherwise invalid server certificates
IGNORE_CERTIFICATE_ERRORS = True

# Page ids used by the order processor scenarios
ROLE_CENTER_PAGE_ID = 9006
CUSTOMER_LIST_PAGE_ID = 22
ITEM_LIST_PAGE_ID = 31
SALES_ORDER_LIST_PAGE_ID = 9305
SALES_ORDER_PAGE_ID = 42
ACTIVITY_CODE_PAGE_ID = 12124

# Think delay in seconds: how long an operator looks at a line before the next one
# Actual pauses vary between 50% and 150% of this value
THINK_DELAY = 1.0

# Pause in seconds before each value is entered (typing time), 0 = none
ENTRY_DELAY = 0.3

# Upper bound for any single pause
MAX_DELAY = 5.0

# Number of concurrent virtual users
USERS = 1

# Iterations per virtual user (None = run until DURATION elapses)
ITERATIONS = 1

# Run duration in seconds when ITERATIONS is None
DURATION = None

# Browser headless mode
# False = browser windows visible (useful for debugging a scenario)
HEADLESS = True

# Timeout in milliseconds for a single client round-trip
INTERACTION_TIMEOUT_MS = 30000

# Output directory for outcomes, spans and the run summary
OUTPUT_DIR = "output/loadtest"
