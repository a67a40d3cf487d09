# SQLModel definitions, imported here to ensure metadata is populated for create_all.
from .base import UUIDMixin, TimestampMixin  # noqa: F401
from .organization import Organization  # noqa: F401
from .user import User  # noqa: F401
from .org_member import OrgMember, OrgInvitation  # noqa: F401
from .project import Project  # noqa: F401
from .package import Package, Asset, PackageContractor  # noqa: F401
from .membership import ProjectMember, PackageMember  # noqa: F401
from .evaluation import TechnicalEvaluation, CommercialEvaluation  # noqa: F401
