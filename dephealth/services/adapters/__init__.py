from .base import (
    AdapterError,
    PackageManagerAdapter,
    install_command,
    override_command,
    regenerate_command,
    remove_command,
    update_command,
)
from .detector import create_adapter, detect_package_manager
from .npm import NodeModulesAdapter, NpmAdapter, PnpmAdapter, YarnAdapter
