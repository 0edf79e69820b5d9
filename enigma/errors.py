class ConfigurationError(ValueError):
    """Raised when a machine cannot be built from the given settings.

    ``field`` names the offending configuration entry when one is known,
    e.g. ``rotors[1].offset``.
    """

    def __init__(self, message: str, field: str = None):
        self.field = field
        if field is not None:
            message = f'{field}: {message}'
        super().__init__(message)
