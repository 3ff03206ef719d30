from .base import Scanner
from .broken import BrokenScanner
from .missing import MissingScanner
from .outdated import OutdatedScanner
from .peer_conflict import PeerConflictScanner
from .security import SecurityScanner
from .version_mismatch import VersionMismatchScanner
