class OrganizerError(Exception):
    """Base error for the organizer."""


class ConfigError(OrganizerError):
    pass


class DiscoveryError(OrganizerError):
    """Listing the source root failed; no units were produced."""


class WatcherError(OrganizerError):
    """The notification channel could not be opened or registered."""
