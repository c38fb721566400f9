"""Run pipeline stages as a small dependency graph.

Each :class:`Node` is an isolated unit of work that receives only the
:class:`~tag_release.trigger.RunRequest`. Nodes run one at a time in
dependency order; a node starts only when every node it needs succeeded, and
the first failure halts the run.
"""

from __future__ import annotations

import dataclasses
import enum
import graphlib
import typing as typ

from . import annotations
from .errors import ReleaseError

if typ.TYPE_CHECKING:
    from .trigger import RunRequest

__all__ = [
    "Node",
    "RunReport",
    "StageReport",
    "StageStatus",
    "TaskGraph",
    "release_pipeline",
    "run_pipeline",
]

PUBLISH = "publish"
RELEASE = "release"


class StageStatus(enum.Enum):
    """Final state of a stage within one run."""

    SUCCEEDED = "success"
    FAILED = "failure"
    SKIPPED = "skipped"


@dataclasses.dataclass(frozen=True, slots=True)
class Node:
    """Named stage and the stages that must succeed before it may start."""

    name: str
    action: typ.Callable[[RunRequest], object]
    needs: tuple[str, ...] = ()


@dataclasses.dataclass(slots=True)
class StageReport:
    """What happened to one stage."""

    name: str
    status: StageStatus
    result: object | None = None
    error: ReleaseError | None = None


@dataclasses.dataclass(slots=True)
class RunReport:
    """Outcome of :meth:`TaskGraph.run` for one request."""

    request: RunRequest
    stages: list[StageReport] = dataclasses.field(default_factory=list)

    @property
    def succeeded(self) -> bool:
        """Return ``True`` when every stage succeeded."""
        return all(stage.status is StageStatus.SUCCEEDED for stage in self.stages)

    def stage(self, name: str) -> StageReport:
        """Return the report for the stage called ``name``."""
        for stage in self.stages:
            if stage.name == name:
                return stage
        raise KeyError(name)

    def outputs(self) -> dict[str, str]:
        """Return workflow outputs describing the run."""
        values = {"tag": self.request.tag}
        values |= {f"{stage.name}_status": stage.status.value for stage in self.stages}
        return values

    def summary(self) -> str:
        """Render the run as a Markdown table for the job summary."""
        lines = [
            f"### Release pipeline for `{self.request.tag}`",
            "",
            "| Stage | Status | Detail |",
            "| --- | --- | --- |",
        ]
        for stage in self.stages:
            detail = str(stage.error) if stage.error else ""
            detail = detail.replace("|", "\\|").replace("\n", " ")
            lines.append(f"| {stage.name} | {stage.status.value} | {detail} |")
        return "\n".join(lines) + "\n"


class TaskGraph:
    """Acyclic graph of :class:`Node` objects.

    Raises
    ------
    ValueError
        If node names repeat, a node needs an unknown node, or the
        dependencies form a cycle.
    """

    def __init__(self, nodes: typ.Iterable[Node]) -> None:
        self._nodes: dict[str, Node] = {}
        for node in nodes:
            if node.name in self._nodes:
                message = f"Duplicate stage name: {node.name}"
                raise ValueError(message)
            self._nodes[node.name] = node

        sorter: graphlib.TopologicalSorter[str] = graphlib.TopologicalSorter()
        for node in self._nodes.values():
            if unknown := sorted(set(node.needs) - self._nodes.keys()):
                joined = ", ".join(unknown)
                message = f"Stage {node.name!r} needs unknown stage(s): {joined}"
                raise ValueError(message)
            sorter.add(node.name, *node.needs)
        try:
            self._order = tuple(sorter.static_order())
        except graphlib.CycleError as exc:
            message = f"Stage dependencies form a cycle: {exc.args[1]}"
            raise ValueError(message) from exc

    @property
    def order(self) -> tuple[str, ...]:
        """Stage names in execution order."""
        return self._order

    def run(self, request: RunRequest) -> RunReport:
        """Execute the stages for ``request`` and report each one's status."""
        report = RunReport(request)
        statuses: dict[str, StageStatus] = {}
        halted = False

        for name in self._order:
            node = self._nodes[name]
            ready = all(statuses[need] is StageStatus.SUCCEEDED for need in node.needs)
            if halted or not ready:
                statuses[name] = StageStatus.SKIPPED
                report.stages.append(StageReport(name, StageStatus.SKIPPED))
                print(f"Skipped stage '{name}'")
                continue

            with annotations.group(f"{name} {request.tag}"):
                try:
                    result = node.action(request)
                except ReleaseError as exc:
                    annotations.error(str(exc), title=f"{name.capitalize()} Failure")
                    statuses[name] = StageStatus.FAILED
                    report.stages.append(
                        StageReport(name, StageStatus.FAILED, error=exc)
                    )
                    halted = True
                    continue

            statuses[name] = StageStatus.SUCCEEDED
            report.stages.append(
                StageReport(name, StageStatus.SUCCEEDED, result=result)
            )

        return report


def release_pipeline(
    publish: typ.Callable[[RunRequest], object],
    release: typ.Callable[[RunRequest], object],
) -> TaskGraph:
    """Return the publish-then-release graph: two nodes, one edge."""
    return TaskGraph(
        [
            Node(PUBLISH, publish),
            Node(RELEASE, release, needs=(PUBLISH,)),
        ]
    )


def run_pipeline(
    request: RunRequest,
    *,
    publish: typ.Callable[[RunRequest], object],
    release: typ.Callable[[RunRequest], object],
) -> RunReport:
    """Run both stages for ``request``."""
    return release_pipeline(publish, release).run(request)
