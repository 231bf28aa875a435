"""Domain errors surfaced by the registry, timeline and archive layers.

Each carries a machine-readable ``code`` and the HTTP status the API maps it to.
"""


class MonitorError(Exception):
    code = "monitor_error"
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class TargetNotFoundError(MonitorError):
    code = "target_not_found"
    status_code = 404

    def __init__(self, target_id: int):
        super().__init__(f"Target {target_id} not found")
        self.target_id = target_id


class DuplicateAddressError(MonitorError):
    code = "duplicate_address"
    status_code = 409

    def __init__(self, address: str):
        super().__init__("A target with this address already exists")
        self.address = address


class InvalidOutcomeError(MonitorError):
    code = "invalid_outcome"
    status_code = 422


class StorageError(MonitorError):
    code = "storage_error"
    status_code = 500
