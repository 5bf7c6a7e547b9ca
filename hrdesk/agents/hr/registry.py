"""HR tool registry and dispatch.

Every tool is declared once with :func:`hr_tool`: a name, a pydantic input
model, the (action, entity kind) it requires and a body. Dispatch runs the
same pipeline for every call:

1. validate the raw input (unknown tool names fail here too);
2. check the permission policy for the caller's role;
3. run the body, which performs its own ownership check before writing;
4. append an audit entry, best-effort;
5. return the body's JSON-compatible result.

Steps 1 and 2 raise before any database work. A body that raises leaves
no audit entry behind.
"""

from dataclasses import dataclass, field
from functools import lru_cache
from typing import Any, Callable, Dict, FrozenSet, Iterable, List, Optional, Type

from pydantic import ValidationError
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session as DBSession

from hrdesk.agents.hr.context import ExecutionContext, bind_context, current_context
from hrdesk.agents.hr.schemas import ToolInput
from hrdesk.auth.rbac import Action, EntityKind, Role, allowed, parse_role
from hrdesk.core.exceptions import (
    AuthorizationError,
    HRDeskException,
    InvalidInputError,
    PersistenceError,
)
from hrdesk.core.logging import get_logger
from hrdesk.db.database import get_session_local
from hrdesk.services.audit_service import record_audit_entry

logger = get_logger(__name__)


@dataclass(frozen=True)
class ToolOutcome:
    """What a tool body hands back to dispatch."""

    result: Dict[str, Any]
    entity_id: Optional[str] = None
    detail: Optional[Dict[str, Any]] = None
    audited: bool = True


ToolHandler = Callable[[DBSession, ExecutionContext, Any], ToolOutcome]


@dataclass(frozen=True)
class ToolSpec:
    name: str
    description: str
    input_model: Type[ToolInput]
    action: Action
    entity: Optional[EntityKind]
    handler: ToolHandler
    roles: Optional[FrozenSet[Role]] = None
    audit_kind: Optional[str] = field(default=None)

    def permits(self, role: Any) -> bool:
        """Action-level check. Tools restricted to named roles bypass the table."""
        if self.roles is not None:
            return parse_role(role) in self.roles
        return self.entity is not None and allowed(role, self.action, self.entity)

    @property
    def requirement(self) -> Dict[str, Any]:
        return {
            "action": self.action.value,
            "entity": self.entity.value if self.entity else None,
            "roles": sorted(r.value for r in self.roles) if self.roles is not None else None,
        }

    def input_schema(self) -> Dict[str, Any]:
        return self.input_model.model_json_schema(by_alias=True)


_DEFAULT_SPECS: Dict[str, ToolSpec] = {}


def hr_tool(
    name: str,
    *,
    input_model: Type[ToolInput],
    action: Action,
    entity: Optional[EntityKind],
    description: str,
    roles: Optional[Iterable[Role]] = None,
) -> Callable[[ToolHandler], ToolHandler]:
    """Register a tool body under ``name`` in the default catalog."""

    def decorator(func: ToolHandler) -> ToolHandler:
        if name in _DEFAULT_SPECS:
            raise RuntimeError(f"Duplicate tool registration: {name}")
        _DEFAULT_SPECS[name] = ToolSpec(
            name=name,
            description=description,
            input_model=input_model,
            action=action,
            entity=entity,
            handler=func,
            roles=frozenset(roles) if roles is not None else None,
            audit_kind=entity.value if entity else None,
        )
        return func

    return decorator


def _describe_validation_error(exc: ValidationError) -> tuple[str, List[Dict[str, Any]]]:
    errors = exc.errors(include_url=False, include_context=False, include_input=False)
    first = errors[0] if errors else {"loc": (), "msg": "invalid input"}
    location = ".".join(str(part) for part in first.get("loc", ())) or "input"
    return f"Invalid value for '{location}': {first.get('msg')}", errors


class ToolRegistry:
    """The fixed catalog of HR tools available to the generation collaborator."""

    def __init__(self, specs: Iterable[ToolSpec]):
        self._specs: Dict[str, ToolSpec] = {spec.name: spec for spec in specs}

    def names(self) -> List[str]:
        return list(self._specs)

    def get(self, name: str) -> Optional[ToolSpec]:
        return self._specs.get(name)

    def __contains__(self, name: object) -> bool:
        return name in self._specs

    def __len__(self) -> int:
        return len(self._specs)

    def validate(self, name: str, raw_input: Any) -> tuple[ToolSpec, ToolInput]:
        """Resolve ``name`` and validate ``raw_input`` against its contract.

        Raises:
            InvalidInputError: Unknown tool or input violating the contract.
        """
        spec = self._specs.get(name)
        if spec is None:
            raise InvalidInputError(f"Unknown tool: {name}", details={"tool": name})
        try:
            params = spec.input_model.model_validate(raw_input if raw_input is not None else {})
        except ValidationError as exc:
            message, errors = _describe_validation_error(exc)
            raise InvalidInputError(message, details={"tool": name, "errors": errors}) from exc
        return spec, params

    def dispatch(
        self,
        name: str,
        raw_input: Any,
        ctx: Optional[ExecutionContext] = None,
        db: Optional[DBSession] = None,
    ) -> Dict[str, Any]:
        """Run one tool call for ``ctx`` (or the bound context) and return its result.

        Args:
            name: Tool name as declared in the catalog.
            raw_input: Structured input, typically parsed from the model's arguments.
            ctx: Caller of the turn. Falls back to :func:`current_context`.
            db: Session to use. When omitted a fresh session is opened and closed.

        Returns:
            JSON-compatible result dict.
        """
        spec, params = self.validate(name, raw_input)
        ctx = ctx if ctx is not None else current_context()

        if not spec.permits(ctx.role):
            entity = spec.entity.value if spec.entity else "audit log"
            logger.warning(
                "Tool call denied by policy",
                data={"tool": name, "actor_id": ctx.actor_id, "role": ctx.role.value},
            )
            raise AuthorizationError(
                f"Role '{ctx.role.value}' cannot {spec.action.value} {entity}",
                details={"tool": name, "action": spec.action.value, "entity": entity},
            )

        owns_session = db is None
        if owns_session:
            db = get_session_local()()
        try:
            with bind_context(ctx):
                outcome = self._run_body(spec, db, ctx, params)
                if outcome.audited:
                    detail = params.model_dump(mode="json", by_alias=True, exclude_none=True)
                    if outcome.detail:
                        detail.update(outcome.detail)
                    record_audit_entry(
                        db,
                        entity_kind=spec.audit_kind or spec.name,
                        entity_id=outcome.entity_id,
                        action=spec.action.value,
                        actor_id=ctx.actor_id,
                        detail=detail,
                    )
            return outcome.result
        finally:
            if owns_session:
                db.close()

    def _run_body(
        self, spec: ToolSpec, db: DBSession, ctx: ExecutionContext, params: ToolInput
    ) -> ToolOutcome:
        try:
            return spec.handler(db, ctx, params)
        except HRDeskException:
            db.rollback()
            raise
        except IntegrityError as exc:
            db.rollback()
            logger.warning("Tool write rejected by constraint", data={"tool": spec.name})
            raise InvalidInputError(
                f"{spec.name} conflicts with an existing record", details={"tool": spec.name}
            ) from exc
        except SQLAlchemyError as exc:
            db.rollback()
            logger.error(
                f"Tool persistence failed: {type(exc).__name__}",
                data={"tool": spec.name, "error": str(exc)},
            )
            raise PersistenceError(f"{spec.name} could not be saved", details={"tool": spec.name}) from exc

    def catalog(self, role: Any = None) -> List[Dict[str, Any]]:
        """Catalog entries, each flagged with whether ``role`` may call it."""
        return [
            {
                "name": spec.name,
                "description": spec.description,
                "requirement": spec.requirement,
                "inputSchema": spec.input_schema(),
                "allowed": spec.permits(role) if role is not None else None,
            }
            for spec in self._specs.values()
        ]

    def provider_tools(self) -> List[Dict[str, Any]]:
        """Tool declarations in the OpenAI function-calling shape."""
        return [
            {
                "type": "function",
                "function": {
                    "name": spec.name,
                    "description": spec.description,
                    "parameters": spec.input_schema(),
                },
            }
            for spec in self._specs.values()
        ]


@lru_cache
def get_tool_registry() -> ToolRegistry:
    """The registry holding every built-in HR tool."""
    from hrdesk.agents.hr import tools  # noqa: F401  (registers the built-in tools)

    return ToolRegistry(_DEFAULT_SPECS.values())
