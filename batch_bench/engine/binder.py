"""
Parameter binding: maps one logical row onto a statement's positional slots.
"""

from __future__ import annotations

from typing import Any, Sequence, Tuple

from batch_bench.engine.statements import PreparedStatement, StatementTemplate
from batch_bench.errors import BindError


class ParameterBinder:
    """
    Bind ordered values into a prepared statement for one template.

    All values are checked against their slots before the statement is
    touched, so a rejected row leaves the statement's pending parameters as
    they were.
    """

    def __init__(self, template: StatementTemplate) -> None:
        self.template = template

    def _check(self, values: Sequence[Any]) -> None:
        arity = self.template.arity
        if len(values) > arity:
            raise BindError(
                f"{self.template.table}: {len(values)} values supplied for {arity} slots"
            )
        if len(values) < arity:
            raise BindError(
                f"{self.template.table}: only {len(values)} of {arity} slots supplied"
            )
        for position, (slot, value) in enumerate(zip(self.template.slots, values), start=1):
            if not slot.kind.accepts(value):
                raise BindError(
                    f"{self.template.table}.{slot.name} (slot {position}) expects "
                    f"{slot.kind.value}, got {type(value).__name__} {value!r}"
                )

    def bind(self, statement: PreparedStatement, values: Sequence[Any]) -> Tuple[Any, ...]:
        """
        Assign `values` to slots 1..n of `statement` in declared order.

        Returns the bound tuple.
        """
        self._check(values)
        statement.clear_parameters()
        index = 0
        for value in values:
            index += 1
            statement.set_parameter(index, value)
        return tuple(values)

    def bind_record(self, statement: PreparedStatement, record: Any) -> Tuple[Any, ...]:
        return self.bind(statement, record.bind_values())


__all__ = ["ParameterBinder"]
