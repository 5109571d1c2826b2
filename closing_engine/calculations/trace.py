"""Runtime tracing of closing calculations.

While a ``TraceContext`` is active every ``trace()`` call records the value a
formula produced together with the inputs it was fed, so a builder or lawyer
can follow any SOA line back to the figures behind it.
"""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional

from .formula_registry import FormulaCategory, FormulaDefinition, FormulaRegistry


def trace_key(field_path: str, unit_id: Optional[int] = None) -> str:
    """Key of a trace: the field path, suffixed with ``:unit_id`` for unit lines."""
    return field_path if unit_id is None else f"{field_path}:{unit_id}"


def _format_value(value: Any) -> str:
    if isinstance(value, bool) or not isinstance(value, (int, float, Decimal)):
        return str(value)
    return f"${value:,.2f}"


@dataclass
class TracedValue:
    """One recorded formula evaluation."""

    field_path: str
    value: Any
    formula_def: Optional[FormulaDefinition]
    input_values: Dict[str, Any]
    computed_formula: str  # Symbolic formula followed by the actual figures
    unit_id: Optional[int] = None
    notes: str = ""
    recorded_at: datetime = field(default_factory=datetime.now)

    @property
    def key(self) -> str:
        return trace_key(self.field_path, self.unit_id)

    @property
    def label(self) -> str:
        return self.formula_def.name if self.formula_def else self.field_path

    def format_inputs(self) -> str:
        """Inputs as ``name=$value`` pairs, using the last path segment as name."""
        return ", ".join(
            f"{path.rsplit('.', 1)[-1]}={_format_value(value)}"
            for path, value in self.input_values.items()
        )


class TraceContext:
    """Collects traces for the duration of a ``with`` block.

    Usage:
        with TraceContext() as ctx:
            figures = calculate_soa(unit, project, fee_schedule, as_of)
        ctx.get_trace("soa.balance_due_on_closing", unit.id)

    Only one context is active at a time; entering a new one replaces the
    previous, and leaving any context clears it.
    """

    _current: Optional["TraceContext"] = None

    def __init__(self, enabled: bool = True):
        """
        Args:
            enabled: When False, ``trace()`` records nothing.
        """
        self.enabled = enabled
        self.traces: Dict[str, TracedValue] = {}
        self.started_at = datetime.now()

    def __enter__(self) -> "TraceContext":
        TraceContext._current = self
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        TraceContext._current = None

    @staticmethod
    def current() -> Optional["TraceContext"]:
        return TraceContext._current

    def trace(
        self,
        field_path: str,
        value: Any,
        input_values: Dict[str, Any],
        unit_id: Optional[int] = None,
        notes: str = "",
    ) -> None:
        """Record one evaluation, replacing any earlier one for the same key.

        Args:
            field_path: Registered formula path, e.g. "soa.net_hst_payable".
            value: The result.
            input_values: Input path (or name) to the value used.
            unit_id: Unit the line belongs to; None for project-wide values.
            notes: Free-text remark shown with the trace.
        """
        if not self.enabled:
            return
        definition = FormulaRegistry.get(field_path)
        symbolic = definition.formula if definition else field_path
        figures = [_format_value(v) for v in input_values.values()] + [_format_value(value)]
        traced = TracedValue(
            field_path=field_path,
            value=value,
            formula_def=definition,
            input_values=dict(input_values),
            computed_formula=self._render(symbolic, figures),
            unit_id=unit_id,
            notes=notes,
        )
        self.traces[traced.key] = traced

    @staticmethod
    def _render(symbolic: str, figures: List[str]) -> str:
        """e.g. "total_price x 13% = $550,000.00 = $71,500.00"."""
        *inputs, result = figures
        if inputs:
            return f"{symbolic} = {', '.join(inputs)} = {result}"
        return f"{symbolic} = {result}"

    # === Queries ===

    def get_trace(self, field_path: str, unit_id: Optional[int] = None) -> Optional[TracedValue]:
        return self.traces.get(trace_key(field_path, unit_id))

    def get_traces_for_unit(self, unit_id: int) -> Dict[str, TracedValue]:
        return {key: t for key, t in self.traces.items() if t.unit_id == unit_id}

    def get_traces_by_category(self, category: FormulaCategory) -> Dict[str, TracedValue]:
        return {
            key: t for key, t in self.traces.items()
            if t.formula_def is not None and t.formula_def.category == category
        }

    def get_calculation_chain(self, field_path: str, unit_id: Optional[int] = None) -> List[TracedValue]:
        """Traced upstream lines of ``field_path``, ending with the line itself.

        Inputs that were never traced (raw inputs, local names) are skipped.
        Every line appears after all of the traced lines it depends on.
        """
        chain: List[TracedValue] = []
        seen = set()

        def visit(path: str) -> None:
            traced = self.get_trace(path, unit_id)
            if traced is None or traced.key in seen:
                return
            seen.add(traced.key)
            for input_path in traced.input_values:
                visit(input_path)
            chain.append(traced)

        visit(field_path)
        return chain

    def summary(self) -> str:
        """Plain-text listing of every trace, grouped by formula category."""
        grouped: Dict[str, List[TracedValue]] = {}
        for traced in self.traces.values():
            category = traced.formula_def.category.value if traced.formula_def else "Unregistered"
            grouped.setdefault(category, []).append(traced)

        lines = [f"{len(self.traces)} traced values (since {self.started_at:%Y-%m-%d %H:%M:%S})", ""]
        for category in sorted(grouped):
            lines.append(f"[{category}]")
            for traced in grouped[category]:
                unit = f" (unit {traced.unit_id})" if traced.unit_id is not None else ""
                lines.append(f"  {traced.label}{unit}: {traced.computed_formula}")
            lines.append("")
        return "\n".join(lines)


def trace(
    field_path: str,
    value: Any,
    input_values: Dict[str, Any],
    unit_id: Optional[int] = None,
    notes: str = "",
) -> Any:
    """Record ``value`` in the active context, if any, and return it unchanged.

    Written inline where a line is computed:
        net = trace("soa.net_hst_payable", hst - rebate, {"soa.hst_amount": hst}, unit_id=uid)
    """
    context = TraceContext.current()
    if context is not None:
        context.trace(field_path, value, input_values, unit_id, notes)
    return value
