"""Plugin configuration using pydantic-settings.

Configuration hierarchy:
- CloudConfig: Control-plane API settings
- VolumeDefaults: Process-wide defaults for per-volume options
- LoggingConfig: Logging behavior
- ServerConfig: Plugin socket and local filesystem layout
- PluginConfig: Main config aggregating all sub-configs

Environment variable prefix: HCVOLUME_
Example: HCVOLUME_VOLUME_PREFIX=swarm
"""

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# Filesystems tried, in order, when mounting a volume.
SUPPORTED_FILESYSTEMS: tuple[str, ...] = ("ext4", "xfs", "ext3", "ext2")

# Filesystems the control plane can format on volume creation.
REMOTE_FORMATS: tuple[str, ...] = ("xfs", "ext4")


class CloudConfig(BaseSettings):
    """Hetzner Cloud API configuration."""

    model_config = SettingsConfigDict(env_prefix="HCVOLUME_CLOUD_")

    # Credentials - empty default forces explicit configuration
    token: str = Field(default="", description="Hetzner Cloud API token (required)")
    endpoint: str = Field(
        default="https://api.hetzner.cloud/v1",
        description="Hetzner Cloud API base URL",
    )

    # Timeouts
    api_timeout: float = Field(default=30.0, description="API call timeout (seconds)")
    poll_interval: float = Field(
        default=0.5,
        description="Interval between action status polls (seconds)",
    )
    action_timeout: float | None = Field(
        default=None,
        description="Upper bound for a single action wait (seconds, unset = no limit)",
    )


class VolumeDefaults(BaseSettings):
    """Process-wide defaults for volume options.

    Every value here can be overridden per volume through driver options
    (``docker volume create -o size=20 ...``), except ``prefix`` and
    ``use_protection`` which only make sense globally.
    """

    model_config = SettingsConfigDict(env_prefix="HCVOLUME_VOLUME_")

    prefix: str = Field(
        default="docker",
        description="Namespace prepended to every volume name in the cloud",
    )
    size: int = Field(default=10, description="Volume size (GB)")
    fstype: str = Field(default="ext4", description="Filesystem used for local formatting")
    uid: int = Field(default=0, description="Owner UID of the filesystem root")
    gid: int = Field(default=0, description="Owner GID of the filesystem root")
    use_protection: bool = Field(
        default=False,
        description="Enable deletion protection on created volumes",
    )


class LoggingConfig(BaseSettings):
    """Logging configuration.

    Supported formats:
    - text: Human-readable for local development
    - json: Structured logging for log aggregation
    - bare: Message only (Docker already prefixes plugin output)
    """

    model_config = SettingsConfigDict(env_prefix="HCVOLUME_LOGGING_")

    level: str = Field(default="INFO", description="Log level (DEBUG, INFO, WARNING, ERROR)")
    format: str = Field(default="bare", description="Log format (text, json, bare)")
    service_name: str = Field(default="hcvolume", description="Service identifier in logs")


class ServerConfig(BaseSettings):
    """Plugin server and local filesystem layout."""

    model_config = SettingsConfigDict(env_prefix="HCVOLUME_SERVER_")

    socket_path: str = Field(
        default="/run/docker/plugins/hetzner.sock",
        description="Unix socket the plugin protocol is served on",
    )
    propagated_mount_root: str = Field(
        default="/mnt",
        description="Directory under which per-request mountpoints are created",
    )
    hostname: str | None = Field(
        default=None,
        description="Cloud server name of this host (defaults to the local hostname)",
    )
    mkfs_dir: str = Field(default="/sbin", description="Directory containing mkfs.* tools")


class PluginConfig(BaseSettings):
    """Main plugin configuration aggregating all sub-configs.

    Environment variable prefix: HCVOLUME_
    Sub-configs use their own prefixes (HCVOLUME_CLOUD_, HCVOLUME_VOLUME_, etc.)
    """

    model_config = SettingsConfigDict(
        env_prefix="HCVOLUME_",
        env_nested_delimiter="__",
    )

    # Sub-configurations
    cloud: CloudConfig = Field(default_factory=CloudConfig)
    volume: VolumeDefaults = Field(default_factory=VolumeDefaults)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    server: ServerConfig = Field(default_factory=ServerConfig)


@lru_cache
def get_plugin_config() -> PluginConfig:
    """Get cached plugin configuration singleton."""
    return PluginConfig()
