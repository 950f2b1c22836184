"""
System Constants

Values shared across the inventory service: HTTP headers, vehicle
enumerations, SQL allow-lists and pool defaults.
"""

# ============================================================================
# HTTP
# ============================================================================

HEADER_REQUEST_ID = "X-Request-ID"
HEADER_USER_ID = "X-User-ID"

NO_CACHE_HEADERS = {
    "Cache-Control": "no-store, no-cache, must-revalidate, proxy-revalidate, max-age=0",
    "Pragma": "no-cache",
    "Expires": "0",
}

# ============================================================================
# Vehicles
# ============================================================================

VEHICLE_STATUSES: tuple[str, ...] = ("Available", "Pending", "Sold")
DEFAULT_VEHICLE_STATUS = "Available"
DEFAULT_VEHICLE_CONDITION = "New"
DEFAULT_VEHICLE_TYPE_ID = 2

# Columns a caller may sort the filtered listing by; anything else falls back
# to DEFAULT_SORT_COLUMN before it reaches SQL text.
SORTABLE_COLUMNS: frozenset[str] = frozenset({
    "UnitID",
    "VIN",
    "Make",
    "Model",
    "Year",
    "Status",
    "Price",
    "StockNo",
    "Condition",
    "Category",
    "CreatedAt",
    "UpdatedAt",
})
DEFAULT_SORT_COLUMN = "CreatedAt"

# Column list returned by every listing endpoint
VEHICLE_COLUMNS = (
    "UnitID, VIN, Make, Model, Year, Price, Status, Description, TypeID, "
    "CreatedAt, UpdatedAt, StockNo, Condition, Category, WidthCategory, SizeCategory"
)

# ============================================================================
# Pagination
# ============================================================================

DEFAULT_PAGE = 1
DEFAULT_PAGE_LIMIT = 10
DEFAULT_FILTERED_PAGE_LIMIT = 50
MAX_PAGE_LIMIT = 500

# ============================================================================
# Text rewrite
# ============================================================================

REWRITE_MAX_WORDS = 120
REWRITE_HEADER = "Vehicle Description:"

# ============================================================================
# Blob storage
# ============================================================================

DEFAULT_IMAGE_BASE_URL = "https://storageinventoryflatt.blob.core.windows.net/invpics/units/"
DEFAULT_IMAGE_CONTAINER = "invpics"
DEFAULT_IMAGE_PREFIX = "units/"
FOLDER_PLACEHOLDER_BLOB = ".keep"
# Unit photos are stored as {prefix}{VIN}/{n}.{ext}
IMAGE_EXTENSIONS = ("png", "jpg", "jpeg", "webp", "gif")

# ============================================================================
# Database
# ============================================================================

DEFAULT_ODBC_DRIVER = "ODBC Driver 18 for SQL Server"
HEALTH_CHECK_QUERY = "SELECT 1 AS HealthCheck, SYSUTCDATETIME() AS ServerTime"

# Circuit breaker state values for the Prometheus gauge
CIRCUIT_STATE_VALUES = {"closed": 0, "half_open": 1, "open": 2}
