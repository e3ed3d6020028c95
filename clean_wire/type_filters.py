import inspect

from theutilitybelt.functional.predicate import predicate

from .events import Emitter
from .service import NamedService


def is_subclass_of(cls: type):
    """
    Returns a predicate that checks whether the input is a class deriving from 'cls'.
    """

    def inner(t: type):
        return inspect.isclass(t) and issubclass(t, cls)

    return predicate(inner)


is_named_service = is_subclass_of(NamedService)
is_emitter_type = is_subclass_of(Emitter)
