"""
Grouping of reports by region for the locations list
"""

from typing import Dict, Iterable, List, Optional

from unswachh.core.constants import OTHER_REGION
from unswachh.crowdsource.report_store import Report


def _is_number(text: str) -> bool:
    try:
        float(text)
    except ValueError:
        return False
    return True


def region_of(location_name: Optional[str]) -> str:
    """
    State-level region of a comma-separated location label.

    "Area, City, State, Country" -> "State". When that part is a postal
    code, the part before it is used instead.
    """
    parts = [p.strip() for p in (location_name or "").split(",")]

    if len(parts) >= 2:
        candidate = parts[-2]
        if candidate and not _is_number(candidate):
            return candidate
        if len(parts) >= 3 and parts[-3]:
            return parts[-3]
        return OTHER_REGION

    if parts[0]:
        return parts[0]
    return OTHER_REGION


def group_by_region(reports: Iterable[Report]) -> Dict[str, List[Report]]:
    """Reports keyed by region, regions in alphabetical order."""
    groups: Dict[str, List[Report]] = {}
    for report in reports:
        groups.setdefault(region_of(report.location_name), []).append(report)
    return {region: groups[region] for region in sorted(groups)}
