"""Exception types raised by relayrun components"""


class RelayError(Exception):
    """Base class for faults that abort an invocation before the remote run completes"""


class ConfigError(RelayError):
    """Options or local paths could not be resolved"""


class SessionError(RelayError):
    """Connection, authentication or file-transfer channel failure"""


class DeployError(RelayError):
    """Local read or remote create/write/chmod/mkdir failure during upload"""


class ExecutionError(RelayError):
    """A command channel could not be opened on the session"""
