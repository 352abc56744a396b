from compliance_watch.common.enums import ClassifierErrorKind


class ClassifierUnavailableError(RuntimeError):
    def __init__(self, message: str, *, kind: ClassifierErrorKind = ClassifierErrorKind.unreachable) -> None:
        super().__init__(message)
        self.kind = kind


class DuplicateAnalysisError(ValueError):
    pass
