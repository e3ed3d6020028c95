import logging
import warnings

logger = logging.getLogger(__name__)


def send_deprecation_warning(message: str):
    warnings.warn(message, category=DeprecationWarning, stacklevel=3)


class DeprecationSink:
    """
    Records deprecation notices and emits each distinct message only once.
    Containers share the process-wide ``DEPRECATIONS`` sink unless they are given their own,
    which lets tests look at ``messages`` without touching global state.
    """

    def __init__(self):
        self._messages: list[str] = []

    @property
    def messages(self) -> list[str]:
        return list(self._messages)

    def warn(self, message: str) -> bool:
        if message in self._messages:
            return False
        self._messages.append(message)
        logger.debug(f"deprecation: {message}")
        send_deprecation_warning(message)
        return True

    def reset(self):
        self._messages.clear()


DEPRECATIONS = DeprecationSink()


def singleton(cls):
    """
    A singleton decorator. Returns a wrapper objects. A call on that object
    returns a single instance object of decorated class. Use the __wrapped__
    attribute to access decorated class directly in unit tests
    """

    cls.__INSTANCE__ = None

    def singleton_new(singleton_cls):
        if cls.__INSTANCE__ is None:
            # If no instance exists yet, create one
            cls.__INSTANCE__ = super(cls, cls).__new__(cls)
        # Return the single instance
        return cls.__INSTANCE__

    cls.__new__ = singleton_new

    return cls


@singleton
class _empty:  # noqa: N801
    def __bool__(self):
        return False

    def __repr__(self):
        return "EMPTY"


EMPTY = _empty()
