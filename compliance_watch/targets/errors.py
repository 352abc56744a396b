class TargetValidationError(ValueError):
    pass


class TargetNotFoundError(KeyError):
    pass
