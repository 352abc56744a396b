class SchedulePolicyError(ValueError):
    pass
