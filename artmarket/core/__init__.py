from .errors import (  # noqa
    ArtMarketError,
    ConfigError,
    Conflict,
    Forbidden,
    InconsistentTransfer,
    NotFound,
    PartialFailure,
    RateLimited,
    Timeout,
    Unauthenticated,
    Unavailable,
    ValidationError,
)
from .models import (  # noqa
    AbstractCache,
    AbstractRepository,
    AbstractUnitOfWork,
    Entity,
    EntityReposMap,
)
