# Import models so they register with SQLAlchemy metadata.
from jobtrack.models.user import User  # noqa: F401
from jobtrack.models.token import Token  # noqa: F401
from jobtrack.models.application import Application  # noqa: F401
from jobtrack.models.application_status import ApplicationStatus  # noqa: F401
