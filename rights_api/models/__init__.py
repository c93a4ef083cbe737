"""Central model registry: import all models so Alembic autodiscover works."""

from rights_api.database import Base  # noqa: F401

from rights_api.models.user import User  # noqa: F401
from rights_api.models.contract import Contract, ContractContent  # noqa: F401
from rights_api.models.content_item import ContentItem  # noqa: F401
from rights_api.models.royalty import Royalty  # noqa: F401
from rights_api.models.audit_log import AuditLog  # noqa: F401
