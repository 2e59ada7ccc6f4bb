from .catalog import CatalogClient, PackReference, RepositoryCoordinates
from .commands.compute import MissingComputer
from .errors import (
    PackMissingError,
    UnsupportedEditionError,
    SyncError,
    EmptyBaselineError,
    CatalogUnavailableError,
    DisplayReconciliationError,
)
from .filters import FilterConfig, FilterSet
from .progress import DisplayChannel, DisplayService, ProgressChannelReconciler
from .results import DiffResult, TaskOutcome
from .settings import Settings
from .sync import RepositorySynchronizer, SyncedTree
