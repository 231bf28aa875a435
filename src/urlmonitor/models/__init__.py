from urlmonitor.models.target import Target
from urlmonitor.models.outcome import Outcome
from urlmonitor.models.archive_entry import ArchiveEntry
from urlmonitor.models.admin_user import AdminUser

__all__ = ["Target", "Outcome", "ArchiveEntry", "AdminUser"]
