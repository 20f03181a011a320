# Import models here so Alembic can discover metadata.
from app.models.plan import Plan  # noqa: F401
from app.models.user import User  # noqa: F401
from app.models.merchant import Merchant  # noqa: F401
from app.models.deal import Deal  # noqa: F401
from app.models.redemption_request import RedemptionRequest  # noqa: F401
