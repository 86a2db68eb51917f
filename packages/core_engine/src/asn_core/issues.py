from dataclasses import asdict, dataclass
from typing import Dict, Iterable, List

SEVERITY_ORDER = ("error", "warning", "info")


@dataclass(frozen=True)
class Issue:
    severity: str
    code: str
    message: str
    path: str = "/"

    def to_dict(self) -> Dict[str, str]:
        return asdict(self)


def has_errors(issues: Iterable[Issue]) -> bool:
    return any(issue.severity == "error" for issue in issues)


def severity_counts(issues: Iterable[Issue]) -> Dict[str, int]:
    counts = {severity: 0 for severity in SEVERITY_ORDER}
    for issue in issues:
        counts[issue.severity] = counts.get(issue.severity, 0) + 1
    return counts


def to_lines(issues: List[Issue]) -> List[str]:
    return [f"[{issue.severity.upper()}] {issue.code} {issue.path}: {issue.message}" for issue in issues]
