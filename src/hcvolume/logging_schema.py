"""Log event types for structured logging."""

from enum import StrEnum


class LogEvent(StrEnum):
    """Log event types for the volume driver.

    Used with logger.info/warning/error extra dict:
        logger.info("message", extra={"event": LogEvent.VOLUME_CREATED, ...})
    """

    # Application lifecycle
    APP_STARTED = "app_started"
    APP_STOPPED = "app_stopped"

    # Remote volume lifecycle
    VOLUME_CREATED = "volume_created"
    VOLUME_ATTACHED = "volume_attached"
    VOLUME_DETACHED = "volume_detached"
    VOLUME_PROTECTED = "volume_protected"
    VOLUME_UNPROTECTED = "volume_unprotected"
    VOLUME_REMOVED = "volume_removed"
    PROTECTION_FAILED = "protection_failed"

    # Actions
    ACTION_COMPLETED = "action_completed"
    ACTION_FAILED = "action_failed"

    # Local device operations
    VOLUME_FORMATTED = "volume_formatted"
    VOLUME_MOUNTED = "volume_mounted"
    VOLUME_UNMOUNTED = "volume_unmounted"
    MOUNT_ATTEMPT_FAILED = "mount_attempt_failed"
    OWNERSHIP_CHANGED = "ownership_changed"
    CLEANUP_FAILED = "cleanup_failed"

    # Validation / resolution
    UNSUPPORTED_OPTION = "unsupported_option"
    HOSTNAME_WARNING = "hostname_warning"
    DETACH_SKIPPED = "detach_skipped"

    # Requests
    REQUEST_COMPLETE = "request_complete"
    REQUEST_FAILED = "request_failed"

    # Error events
    UNHANDLED_EXCEPTION = "unhandled_exception"
    PLUGIN_ERROR = "plugin_error"
