"""
Circuitboard Scene Actions
==========================

Machine-generated scene edits as a closed set of commands:

    {"type": "add_node", "node": {"title": "Cache", "color": "#52c41a", "x": 0, "y": 0}}
    {"type": "add_edge", "edge": {"sourceTitle": "API", "targetTitle": "Cache"}}

A payload is validated as a whole with pydantic before anything touches the
scene. Numbers must be finite and strings must be strings; nothing is
coerced. Edges resolve their endpoints by id or by node title (including
nodes added earlier in the same batch); an edge whose endpoints can't be
resolved is skipped, not an error.
"""

import json
import logging
import random
from typing import Annotated, Any, List, Literal, Optional, Union

from pydantic import (
    BaseModel, ConfigDict, Field, StrictFloat, StrictStr, TypeAdapter, ValidationError, field_validator
)

from .config import DEFAULT_NODE_COLOR, EngineConfig, get_config
from .errors import ActionError
from .models import Direction, Edge, Keyword, Node, new_id
from .store import SceneStore

logger = logging.getLogger(__name__)


# ==============================================================================
# Action Models
# ==============================================================================

FiniteNumber = Annotated[StrictFloat, Field(allow_inf_nan=False)]


class AddNode(BaseModel):
    title: StrictStr = ""
    color: StrictStr = DEFAULT_NODE_COLOR
    size: Optional[FiniteNumber] = None
    x: Optional[FiniteNumber] = None
    y: Optional[FiniteNumber] = None
    description: StrictStr = ""
    tags: List[StrictStr] = Field(default_factory=list)


class AddEdge(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    source_id: Optional[StrictStr] = Field(default=None, alias="sourceId")
    target_id: Optional[StrictStr] = Field(default=None, alias="targetId")
    source_title: Optional[StrictStr] = Field(default=None, alias="sourceTitle")
    target_title: Optional[StrictStr] = Field(default=None, alias="targetTitle")
    direction: Direction = Direction.NONE
    keywords: List[Keyword] = Field(default_factory=list)
    note: StrictStr = ""

    @field_validator("keywords")
    @classmethod
    def dedupe_keywords(cls, value: List[Keyword]) -> List[Keyword]:
        return list(dict.fromkeys(value))


class AddNodeAction(BaseModel):
    type: Literal["add_node"]
    node: AddNode


class AddEdgeAction(BaseModel):
    type: Literal["add_edge"]
    edge: AddEdge


SceneAction = Union[AddNode, AddEdge]

_ACTIONS = TypeAdapter(
    List[Annotated[Union[AddNodeAction, AddEdgeAction], Field(discriminator="type")]]
)


# ==============================================================================
# Validation
# ==============================================================================

def _extract_json(text: str) -> Any:
    """Parse the outermost {...} block of a text reply"""
    start = text.find("{")
    end = text.rfind("}")
    if start == -1 or end <= start:
        raise ActionError("no JSON object found")
    try:
        return json.loads(text[start:end + 1])
    except ValueError as e:
        raise ActionError(f"malformed JSON: {e}")


def _describe(error: ValidationError) -> str:
    first = error.errors()[0]
    location = ".".join(str(part) for part in first["loc"])
    return f"action {location}: {first['msg']}" if location else first["msg"]


def parse_actions(payload: Any) -> List[SceneAction]:
    """
    Validate an action payload.

    Args:
        payload: {"actions": [...]}, a bare list of actions, or text holding
                 such a JSON object

    Returns:
        Typed actions in payload order

    Raises:
        ActionError: anything in the payload is malformed
    """
    if isinstance(payload, str):
        payload = _extract_json(payload)
    if isinstance(payload, dict):
        payload = payload.get("actions")
    if not isinstance(payload, list):
        raise ActionError("'actions' must be a list")

    try:
        envelopes = _ACTIONS.validate_python(payload)
    except ValidationError as e:
        raise ActionError(_describe(e))
    return [env.node if isinstance(env, AddNodeAction) else env.edge for env in envelopes]


# ==============================================================================
# Application
# ==============================================================================

def apply_actions(
    store: SceneStore,
    actions: List[SceneAction],
    rng: Optional[random.Random] = None,
    config: Optional[EngineConfig] = None
) -> List[str]:
    """
    Apply validated actions to the store in order.

    Nodes without a position land at a random point in (100..300, 100..300).

    Returns:
        Ids of the nodes and edges that were added
    """
    rng = rng or random.Random()
    config = config or get_config()
    title_to_id = {node.title: node.id for node in store.nodes}
    added: List[str] = []

    for action in actions:
        if isinstance(action, AddNode):
            node = Node(
                id=new_id(),
                x=action.x if action.x is not None else 100 + rng.random() * 200,
                y=action.y if action.y is not None else 100 + rng.random() * 200,
                size=config.clamp_node_size(action.size) if action.size is not None
                else config.node_size_default,
                color=action.color,
                title=action.title or f"Node {store.node_count + 1}",
                description=action.description,
                tags=list(action.tags),
            )
            store.add_node(node)
            title_to_id[node.title] = node.id
            added.append(node.id)

        elif isinstance(action, AddEdge):
            source_id = action.source_id or title_to_id.get(action.source_title or "")
            target_id = action.target_id or title_to_id.get(action.target_title or "")
            if not source_id or not target_id or source_id == target_id:
                logger.debug(f"Skipped edge {action.source_title!r} -> {action.target_title!r}: "
                             f"unresolved endpoint")
                continue
            edge = store.add_edge(Edge(
                id=new_id(),
                source_id=source_id,
                target_id=target_id,
                direction=action.direction,
                keywords=list(action.keywords),
                note=action.note,
            ))
            if edge is not None:
                added.append(edge.id)

    logger.info(f"Applied {len(actions)} actions ({len(added)} items added)")
    return added
