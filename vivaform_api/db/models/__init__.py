"""
ORM models for VivaForm: accounts and profiles, tracking entries, the food and
meal catalog, CMS content, billing and back-office records.

Importing this package ensures model classes are registered with the Base
metadata for Alembic and runtime usage.
"""

# Re-export commonly used models for convenience and to ensure import side-effects
# register all mapped classes with SQLAlchemy metadata.

from .users import (  # noqa: F401
    User,
    Profile,
    QuizProfile,
    QuizLead,
)
from .tracking import (  # noqa: F401
    NutritionEntry,
    WaterEntry,
    WeightEntry,
    Recommendation,
)
from .catalog import (  # noqa: F401
    FoodItem,
    MealTemplate,
)
from .content import (  # noqa: F401
    Article,
)
from .billing import (  # noqa: F401
    Subscription,
)
from .admin import (  # noqa: F401
    AuditLog,
    FeatureToggle,
    Ticket,
    TicketReply,
    AppSetting,
)
