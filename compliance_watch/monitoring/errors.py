class CheckCallbackError(RuntimeError):
    def __init__(self, target_id: str, status: int, detail: str) -> None:
        super().__init__(f"check callback for {target_id} failed with {status}: {detail}")
        self.target_id = target_id
        self.status = status
        self.detail = detail
