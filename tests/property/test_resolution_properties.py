"""Property tests for settings resolution and stream fan-out.

Resolution must be pure: literal templates resolve to equal values, run
arguments and templates are never mutated, and every resolution builds
fresh containers. Forks must each observe the source sequence exactly,
whatever the buffer bound.
"""

import asyncio
import copy
from typing import Any

from hypothesis import given
from hypothesis import strategies as st

from forkline.contracts.args import ArgDescriptor
from forkline.core.expressions import PipelineArg, compile_template, evaluate, resolve_settings
from forkline.engine.streams import RecordStream
from tests.property.settings import SLOW_SETTINGS, STANDARD_SETTINGS

scalars = st.none() | st.booleans() | st.integers() | st.text(max_size=10) | st.floats(allow_nan=False)

templates = st.recursive(
    scalars,
    lambda children: (
        st.lists(children, max_size=4)
        | st.tuples(children, children)
        | st.dictionaries(st.text(min_size=1, max_size=5), children, max_size=4)
    ),
    max_leaves=15,
)

arg_names = st.text(alphabet="abcdefghijklmnopqrstuvwxyz_", min_size=1, max_size=8)


class TestResolutionProperties:
    @given(template=templates)
    @STANDARD_SETTINGS
    def test_literal_templates_resolve_to_themselves(self, template: Any) -> None:
        assert resolve_settings(template) == template

    @given(template=templates)
    @STANDARD_SETTINGS
    def test_resolution_never_mutates_the_template(self, template: Any) -> None:
        snapshot = copy.deepcopy(template)

        resolved = resolve_settings(template)
        if isinstance(resolved, dict | list):
            resolved.clear()

        assert template == snapshot

    @given(values=st.dictionaries(arg_names, scalars, min_size=1, max_size=5))
    @STANDARD_SETTINGS
    def test_placeholders_resolve_from_args_without_mutating_them(self, values: dict[str, Any]) -> None:
        template = {name: PipelineArg(name=name) for name in values}
        args = dict(values)
        expr = compile_template(template)

        first = evaluate(expr, args)
        second = evaluate(expr, args)

        assert first == second == values
        assert first is not second
        assert args == values

    @given(name=arg_names, default=scalars.filter(lambda v: v is not None), present=st.booleans(), value=scalars)
    @STANDARD_SETTINGS
    def test_present_key_wins_over_default(self, name: str, default: Any, present: bool, value: Any) -> None:
        descriptor = ArgDescriptor(name=name, default_value=default)
        source = {name: value} if present else {}

        assert descriptor.resolve(source, "arg") == (value if present else default)

    @given(value=st.sampled_from(["true", "TRUE", " yes ", "1", "on", "false", "no", "0", "off", ""]))
    @STANDARD_SETTINGS
    def test_boolean_strings_coerce(self, value: str) -> None:
        descriptor = ArgDescriptor(name="flag", boolean=True)

        assert descriptor.resolve({"flag": value}, "arg") is (value.strip().lower() in {"true", "yes", "1", "on"})


class TestForkProperties:
    @given(
        records=st.lists(st.integers(), max_size=30),
        fork_count=st.integers(min_value=1, max_value=4),
        buffer_size=st.none() | st.integers(min_value=1, max_value=5),
    )
    @SLOW_SETTINGS
    def test_every_fork_sees_the_exact_sequence(
        self,
        records: list[int],
        fork_count: int,
        buffer_size: int | None,
    ) -> None:
        async def scenario() -> list[list[int]]:
            stream = RecordStream(records, buffer_size=buffer_size)
            forks = [stream.fork() for _ in range(fork_count)]

            async def drain(fork: Any) -> list[int]:
                return [record async for record in fork]

            return await asyncio.gather(*(drain(fork) for fork in forks))

        assert asyncio.run(scenario()) == [records] * fork_count
