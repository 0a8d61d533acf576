from enum import Enum


class LaunchMode(str, Enum):
    """Where the service runs a profile. See ``ProfileAPI.launch``."""

    DEFAULT = "default"  # Let the service decide
    LOCAL = "local"  # Force the local Incogniton app
    CLOUD = "cloud"  # Force a cloud-hosted instance

    @property
    def path_suffix(self) -> str:
        return "" if self is LaunchMode.DEFAULT else f"/force/{self.value}"
