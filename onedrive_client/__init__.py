from .client import OneDriveClient, client_from_config
from .config import GRAPH, LEGACY, BackendProfile, ClientConfig, TransferConfig, load_config
from .errors import (
    InvalidResponse,
    NoCredentials,
    OneDriveError,
    TokenRetrievalFailed,
    TransferCancelled,
    Unauthorized,
)
from .models import (
    AccessToken,
    CompletedItem,
    Item,
    NameConflictBehavior,
    TransferProgress,
    UploadSession,
)

__version__ = "0.1.0"
