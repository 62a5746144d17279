class ConfigValidationError(Exception):
    def __init__(self, message="Configuration is invalid.", errors=None):
        self.errors = errors or []
        super().__init__(message)

class UnknownProfileError(Exception):
    def __init__(self, message="") -> None:
        true_message = str(message)
        if not true_message:
            true_message = "Unknown profile"
        super().__init__(true_message)

class TemplateNotFound(Exception):
    def __init__(self, message="") -> None:
        true_message = str(message)
        if not true_message:
            true_message = "Template not found"
        super().__init__(true_message)

class BuiltinTemplateError(Exception):
    def __init__(self, message="Built-in templates cannot be modified or deleted."):
        super().__init__(message)

class DockerUnavailable(Exception):
    def __init__(self, message="Docker is not installed, not running, or not accessible to the wizard."):
        super().__init__(message)

class DockerError(Exception):
    def __init__(self, message="A docker command failed.", details=None) -> None:
        self.details = details or {}
        super().__init__(message)

class BackupNotFound(Exception):
    def __init__(self, message="") -> None:
        true_message = str(message)
        if not true_message:
            true_message = "Backup not found"
        super().__init__(true_message)

class CheckpointNotFound(Exception):
    def __init__(self, message="") -> None:
        true_message = str(message)
        if not true_message:
            true_message = "Checkpoint not found"
        super().__init__(true_message)

class StateNotFound(Exception):
    def __init__(self, message="No saved state found."):
        super().__init__(message)

class InvalidStateError(Exception):
    def __init__(self, message="State must be a valid object."):
        super().__init__(message)
