from importlib import import_module
from typing import Any, Dict
import inspect


def _accepted_kwargs(cls: type, kwargs: Dict[str, Any]) -> Dict[str, Any]:
    params = list(inspect.signature(cls.__init__).parameters.values())
    if any(p.kind == p.VAR_KEYWORD for p in params):
        return dict(kwargs)
    allowed = {
        p.name
        for p in params
        if p.kind in (p.POSITIONAL_OR_KEYWORD, p.KEYWORD_ONLY) and p.name != "self"
    }
    return {k: v for k, v in kwargs.items() if k in allowed}


def load(dotted: str, **kwargs: Any) -> Any:
    """Resolve a `package.module.Attr` path from settings.

    Classes are instantiated with the subset of kwargs their constructor accepts,
    so shared dependencies (e.g. the upstream client) can be offered to every
    component without each one declaring them. Anything else is returned as is.
    """
    if not dotted or "." not in dotted:
        raise ValueError(f"Expected a dotted import path, got {dotted!r}")
    module_name, attr = dotted.rsplit(".", 1)
    obj = getattr(import_module(module_name), attr)
    if isinstance(obj, type):
        return obj(**_accepted_kwargs(obj, kwargs))
    return obj
