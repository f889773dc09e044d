from configurations.settings_details.env import env


SERVER_VERSION = "0.1.0"

# Inventory ledger
INVENTORY_CAS_MAX_RETRIES = env.int("INVENTORY_CAS_MAX_RETRIES", default=3)
INVENTORY_DEFAULT_LOCATION_CODE = env("INVENTORY_DEFAULT_LOCATION_CODE", default="WH1")

# Job lifecycle
JOBS_VEHICLE_REQUIRED_TYPES = env.list(
    "JOBS_VEHICLE_REQUIRED_TYPES",
    default=["NEW_INSTALLATION", "REPLACEMENT", "UPGRADE"],
)
JOBS_NO_DEVICE_CHANGE_TYPES = env.list(
    "JOBS_NO_DEVICE_CHANGE_TYPES",
    default=["MAINTENANCE", "REPAIR"],
)
JOBS_AUTO_ADVANCE = env.bool("JOBS_AUTO_ADVANCE", default=True)

# Notifications (delivery is handled by an external service)
NOTIFICATIONS_ENABLED = env.bool("NOTIFICATIONS_ENABLED", default=True)
