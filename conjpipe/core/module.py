from typing import Callable, Optional, Dict, Any, get_type_hints, Type, ClassVar
from types import MappingProxyType
from dataclasses import dataclass
import functools
import inspect
import numbers

from prefect import flow, task
from prefect.cache_policies import NO_CACHE
from prefect.logging import get_logger

from .distributions import Distribution


__all__ = [
    "Module",
    "InputSpec",
]

logger = get_logger("conjpipe.module")

_MISSING = object()


@dataclass
class InputSpec:
    """Declared type, default and required flag of one run-function input.

    ``default=_MISSING`` means the caller has to supply the value unless the
    function signature provides one.
    """
    type: Optional[Type] = None
    required: bool = False
    default: Any = _MISSING


def _is_distribution_type(tp) -> bool:
    return isinstance(tp, type) and issubclass(tp, Distribution)


def _matches(value, expected: type) -> bool:
    # ints and numpy scalars are accepted where a float is declared
    if expected is float:
        return isinstance(value, numbers.Real) and not isinstance(value, bool)
    if expected is int:
        return isinstance(value, numbers.Integral) and not isinstance(value, bool)
    return isinstance(value, expected)


class Module(object):
    """A step of a Bayesian analysis whose entry points run as Prefect tasks.

    A module owns named dependencies (other modules), and a set of run
    functions registered with :meth:`run_func`. A run function is exposed as
    an attribute of the module; calling it

        - fills defaults and rejects missing or unknown inputs,
        - checks arguments against their annotations, converting a
          distribution to the annotated family with ``from_distribution``,
        - passes dependencies whose names appear in its signature,
        - executes inside a Prefect task (or flow).

    Subclasses list the dependencies they need in :pyattr:`DEPENDENCIES`,
    mapping each name to the module class it must be an instance of.

    Args:
        conversion_by_KDE: Forwarded to ``from_distribution`` when an
            argument is converted.
        conversion_num_samples: Draws used by those conversions.
        conversion_fit_kwargs: Extra keyword arguments for the conversions.
        **dependencies: The modules named in :pyattr:`DEPENDENCIES`.

    Raises:
        RuntimeError: When a declared dependency is absent or an undeclared
            one is given.
        TypeError: When a dependency is not a module of the declared class.
    """

    DEPENDENCIES: ClassVar[Dict[str, Type['Module']]] = MappingProxyType({})

    def __init__(
        self,
        conversion_by_KDE: bool = False,
        conversion_num_samples: int = 1024,
        conversion_fit_kwargs: Optional[dict] = None,
        **dependencies: 'Module',
    ):
        absent = [dep for dep in self.DEPENDENCIES if dep not in dependencies]
        if absent:
            raise RuntimeError(f"{type(self).__name__} needs dependencies {absent}")
        undeclared = [dep for dep in dependencies if dep not in self.DEPENDENCIES]
        if undeclared:
            raise RuntimeError(f"{type(self).__name__} does not declare dependencies {undeclared}")

        for dep, instance in dependencies.items():
            wanted = self.DEPENDENCIES[dep]
            if not isinstance(instance, Module):
                raise TypeError(f"dependency '{dep}' is a {type(instance).__name__}, not a Module")
            if isinstance(wanted, type) and not isinstance(instance, wanted):
                raise TypeError(f"dependency '{dep}' must be {wanted.__name__}; got {type(instance).__name__}")

        self.dependencies: Dict[str, Module] = dict(dependencies)
        self.inputs: Dict[str, Dict[str, Any]] = {}
        self._run_funcs: Dict[str, Callable] = {}
        # run function name -> input name -> {'type', 'required', 'default'}
        self._inputs_for_run: Dict[str, Dict[str, Dict[str, Any]]] = {}

        self._conv_by_kde = conversion_by_KDE
        self._conv_num_samples = conversion_num_samples
        self._conv_fit_kwargs = dict(conversion_fit_kwargs or {})

    def set_input(self, **declarations):
        """Declares inputs ahead of :meth:`run_func`.

        Values are either an :class:`InputSpec` or a bare default. A default
        given here wins over the one in the function signature.

        Example:
            >>> self.set_input(level=InputSpec(type=float, default=0.95), num_samples=4000)
        """
        for key, decl in declarations.items():
            spec = decl if isinstance(decl, InputSpec) else InputSpec(default=decl)
            self.inputs[key] = {'type': spec.type, 'required': spec.required, 'default': spec.default}

    # ------------------------------------------------------------------ #
    # run function registration
    # ------------------------------------------------------------------ #

    def run_func(
            self,
            f: Callable,
            *,
            name: Optional[str] = None,
            as_task: bool = True,
            ) -> Callable:
        """Registers ``f`` and exposes it as ``self.<name>``.

        Args:
            f: The computation. Parameters named after a dependency receive it.
            name: Attribute name; ``f.__name__`` by default.
            as_task: Wrap in a Prefect task (``True``) or a flow (``False``).

        Returns:
            The Prefect task or flow.

        Raises:
            RuntimeError: If ``name`` is already registered on this module.
        """
        run_name = name or f.__name__
        if run_name in self._run_funcs:
            raise RuntimeError(f"{type(self).__name__} already has a run function '{run_name}'")

        sig = inspect.signature(f)
        hints = get_type_hints(f)
        self._inputs_for_run[run_name] = self._infer_inputs(sig, hints)
        public_sig = self._public_signature(sig, self._inputs_for_run[run_name])

        @functools.wraps(f)
        def wrapper(*args, **kwargs):
            self._ensure_dependencies_available()

            given = dict(public_sig.bind_partial(*args, **kwargs).arguments)
            call_kwargs = self._ensure_inputs_satisfied(given, run_name=run_name, sig=sig)
            call_kwargs = self._type_check(call_kwargs, hints)
            for dep, instance in self.dependencies.items():
                if dep in sig.parameters and dep not in call_kwargs:
                    call_kwargs[dep] = instance

            logger.debug("Running %s.%s", type(self).__name__, run_name)
            return f(**call_kwargs)

        wrapper.__signature__ = public_sig

        prefect_name = f"{type(self).__name__}.{run_name}"
        if as_task:
            pf = task(wrapper, name=prefect_name, cache_policy=NO_CACHE)
        else:
            pf = flow(wrapper, name=prefect_name, validate_parameters=False)

        self._run_funcs[run_name] = pf
        setattr(self, run_name, pf)
        return pf

    def _public_signature(self, sig: inspect.Signature, specs: Dict[str, Dict[str, Any]]) -> inspect.Signature:
        """Signature seen by callers and by Prefect's argument binding.

        Injected dependencies are dropped and :meth:`set_input` defaults
        replace the defaults written in the function.
        """
        params = []
        later_required = False
        # walk backwards: a positional default may not precede a required positional
        for pname, param in reversed(list(sig.parameters.items())):
            if pname in self.dependencies:
                continue
            default = specs.get(pname, {}).get('default', _MISSING)
            variadic = param.kind in (inspect.Parameter.VAR_POSITIONAL, inspect.Parameter.VAR_KEYWORD)
            keyword_only = param.kind is inspect.Parameter.KEYWORD_ONLY
            if default is not _MISSING and not variadic and (keyword_only or not later_required):
                param = param.replace(default=default)
            if not keyword_only and not variadic and param.default is inspect.Parameter.empty:
                later_required = True
            params.append(param)
        return sig.replace(parameters=params[::-1])

    def _infer_inputs(self, sig: inspect.Signature, hints: Dict[str, Any]) -> Dict[str, Dict[str, Any]]:
        """Input table of one run function: its signature merged with :meth:`set_input`."""
        table: Dict[str, Dict[str, Any]] = {}
        for pname, param in sig.parameters.items():
            if pname == "self" or pname in self.dependencies:
                continue
            ann = hints.get(pname)
            sig_default = _MISSING if param.default is inspect.Parameter.empty else param.default
            entry = {
                'type': ann if isinstance(ann, type) else None,
                'required': sig_default is _MISSING,
                'default': sig_default,
            }
            declared = self.inputs.get(pname)
            if declared is not None:
                if declared['type'] is not None:
                    entry['type'] = declared['type']
                if declared['default'] is not _MISSING:
                    entry['default'] = declared['default']
                entry['required'] = entry['default'] is _MISSING and (declared['required'] or entry['required'])
            table[pname] = entry
        return table

    def _ensure_inputs_satisfied(self, kwargs: Dict[str, Any], *, run_name: str, sig: inspect.Signature) -> Dict[str, Any]:
        """Adds declared defaults and checks that every required input is present.

        Raises:
            TypeError: On a missing required input or an undeclared one.
        """
        table = self._inputs_for_run.get(run_name, {})
        filled = dict(kwargs)
        for key, entry in table.items():
            if key not in filled and entry['default'] is not _MISSING:
                filled[key] = entry['default']

        absent = [key for key, entry in table.items() if entry['required'] and key not in filled]
        if absent:
            raise TypeError(f"{run_name}() is missing required inputs {absent}")

        accepted = set(table) | (set(sig.parameters) - {"self"})
        stray = [key for key in filled if key not in accepted]
        if stray:
            raise TypeError(f"{run_name}() got unexpected inputs {stray}; accepted: {sorted(table)}")
        return filled

    def _ensure_dependencies_available(self):
        gone = [dep for dep in self.DEPENDENCIES if dep not in self.dependencies]
        if gone:
            raise RuntimeError(f"{type(self).__name__} lost dependencies {gone} after construction")

    def _type_check(self, kwargs: Dict[str, Any], hints: Dict[str, Any]) -> Dict[str, Any]:
        """Checks arguments against their annotations.

        A parameter annotated with a distribution family accepts any
        distribution and converts it with ``<family>.from_distribution``
        when it is not already of that family. Other class annotations are
        checked with ``isinstance`` (any real number passes for ``float``).

        Raises:
            TypeError: On a mismatch or a conversion yielding the wrong type.
        """
        checked = dict(kwargs)
        for arg, value in kwargs.items():
            wanted = hints.get(arg)
            if wanted is None or value is None:
                continue

            if _is_distribution_type(wanted):
                if not isinstance(value, Distribution):
                    raise TypeError(f"'{arg}' must be a distribution; got {type(value).__name__}")
                if wanted is Distribution or isinstance(value, wanted):
                    continue
                logger.info("Converting %s to %s for '%s'", type(value).__name__, wanted.__name__, arg)
                converted = wanted.from_distribution(
                    value,
                    num_samples=self._conv_num_samples,
                    conversion_by_KDE=self._conv_by_kde,
                    **self._conv_fit_kwargs,
                )
                if not isinstance(converted, wanted):
                    raise TypeError(f"converting '{arg}' gave {type(converted).__name__}, not {wanted.__name__}")
                checked[arg] = converted
            elif isinstance(wanted, type) and not _matches(value, wanted):
                raise TypeError(f"'{arg}' must be {wanted.__name__}; got {type(value).__name__}")
        return checked

    def __repr__(self):
        return f"<{type(self).__name__} deps={list(self.dependencies)} run_funcs={list(self._run_funcs)}>"

    def __str__(self):
        deps = ", ".join(self.dependencies) or "None"
        inputs = ", ".join(sorted({k for table in self._inputs_for_run.values() for k in table})) or "None"
        run_funcs = ", ".join(self._run_funcs) or "None"
        return f"{type(self).__name__}:\n  Dependencies: {deps}\n  Inputs: {inputs}\n  Run Functions: {run_funcs}"
