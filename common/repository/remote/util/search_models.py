from dataclasses import asdict, dataclass
from typing import Any, Dict, List

@dataclass
class Condition:
    type: str
    jsonPath: str
    operatorType: str
    value: Any

@dataclass
class SearchConditionRequest:
    type: str
    operator: str
    conditions: List[Condition]


def equality_search(criteria: Dict[str, Any]) -> dict:
    """Build an AND group of EQUALS conditions, one per field."""
    request = SearchConditionRequest(
        type="group",
        operator="AND",
        conditions=[
            Condition(type="simple", jsonPath=f"$.{field}", operatorType="EQUALS", value=value)
            for field, value in criteria.items()
        ],
    )
    return asdict(request)
