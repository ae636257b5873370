class NoTargetsError(ValueError):
    """После фильтрации не осталось ни одной цели для провайдера."""


class JobNotFoundError(LookupError):
    pass


class ProviderUnavailableError(RuntimeError):
    """Провайдер не принял работу или не ответил."""
