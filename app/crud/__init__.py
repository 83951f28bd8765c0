from . import event, user  # noqa: F401
