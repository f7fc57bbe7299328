from admissions.app.db.base_class import Base

# Import models to register metadata for Base.metadata.create_all in tests
from admissions.app.models.configuration_item import ConfigurationItem  # noqa: F401
from admissions.app.models.lead import Lead  # noqa: F401
from admissions.app.models.history_entry import HistoryEntry  # noqa: F401
from admissions.app.models.follow_up import FollowUp  # noqa: F401
from admissions.app.models.lead_custom_field import LeadCustomFieldValue  # noqa: F401
