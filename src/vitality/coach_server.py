#!/usr/bin/env python3
"""Vitality Coach MCP Server.

This MCP server provides tools for:
- Generating weekly plan variations from intake answers
- Selecting the active plan
- Logging completed sessions
- Analyzing performance and applying or dismissing adaptations

State lives in the configured key-value store (file, memory or Postgres);
the exercise catalog is loaded once at first use.
"""

from mcp.server import Server
from mcp.server.stdio import stdio_server
import mcp.types as types
from typing import Any, Dict, Optional
import asyncio
import json
import logging
from datetime import date

from vitality.catalog import ExerciseCatalog, catalog_from_settings
from vitality.config import Settings
from vitality.errors import VitalityError
from vitality.models import SessionLog
from vitality.service import ProgramService
from vitality.store import KeyValueStore, create_store

settings = Settings.load()

# Configure logging (stderr; stdout carries the protocol)
logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

# Initialize server
server = Server("vitality-coach-mcp")

_store: Optional[KeyValueStore] = None
_catalog: Optional[ExerciseCatalog] = None
_services: Dict[str, ProgramService] = {}

USER_PROPERTY = {"type": "string", "description": "User id (default: 'default')"}


def get_service(user_id: Optional[str]) -> ProgramService:
    """Service for a user; store and catalog are shared and built on first use."""
    global _store, _catalog
    user_id = user_id or "default"
    if _store is None:
        _store = create_store(settings.store_backend, settings.postgres_dsn, settings.store_path)
    if _catalog is None:
        _catalog = catalog_from_settings(settings)
    if user_id not in _services:
        _services[user_id] = ProgramService(_store, _catalog, settings.engine, user_id)
    return _services[user_id]


def _text(payload: Any) -> list[types.TextContent]:
    if not isinstance(payload, str):
        payload = json.dumps(payload, indent=2, default=str)
    return [types.TextContent(type="text", text=payload)]


@server.list_tools()
async def list_tools_handler() -> list[types.Tool]:
    """List available tools."""
    return [
        types.Tool(
            name="generate_plans",
            description="""Generate weekly plan variations.

Intake answers are free text and are stored as the user's profile when given.
With no answers, the stored profile is used. Same answers + same history
always give the same plans, so a variation can be selected later by index.""",
            inputSchema={
                "type": "object",
                "properties": {
                    "goal": {"type": "string", "description": "e.g. 'get stronger', 'lose weight and build muscle'"},
                    "experience": {"type": "string", "description": "e.g. 'beginner', '3 years lifting'"},
                    "frequency": {"type": "string", "description": "Days per week, e.g. '4' or 'four'"},
                    "equipment": {"type": "string", "description": "e.g. 'gym', 'dumbbells and a bench', 'none'"},
                    "injuries": {"type": "string", "description": "e.g. 'bad knee'"},
                    "session_length": {"type": "string", "description": "e.g. '45 minutes'"},
                    "exclusions": {"type": "string", "description": "Comma-separated exercise names to avoid"},
                    "count": {"type": "integer", "description": "Number of variations (default 3)"},
                    "user_id": USER_PROPERTY
                }
            }
        ),
        types.Tool(
            name="select_plan",
            description="Make variation N (1-based, as listed by generate_plans) the active plan.",
            inputSchema={
                "type": "object",
                "properties": {
                    "index": {"type": "integer", "description": "Variation number, starting at 1"},
                    "user_id": USER_PROPERTY
                },
                "required": ["index"]
            }
        ),
        types.Tool(
            name="get_active_plan",
            description="Return the active plan, session count and pending adaptations.",
            inputSchema={
                "type": "object",
                "properties": {"user_id": USER_PROPERTY}
            }
        ),
        types.Tool(
            name="log_session",
            description="""Append a completed (or abandoned) session to the history.

Session shape:
{"date": "YYYY-MM-DD", "completed": true, "duration_minutes": 50,
 "exercises": [{"exercise_id": "...", "name": "...",
                "sets": [{"set_number": 1, "reps": 8, "weight": 60, "completed": true}]}]}
plan_id defaults to the active plan.""",
            inputSchema={
                "type": "object",
                "properties": {
                    "session": {"type": "object", "description": "Session log"},
                    "user_id": USER_PROPERTY
                },
                "required": ["session"]
            }
        ),
        types.Tool(
            name="analyze_performance",
            description="Analyze the active plan against logged sessions and return suggested adaptations.",
            inputSchema={
                "type": "object",
                "properties": {"user_id": USER_PROPERTY}
            }
        ),
        types.Tool(
            name="apply_adaptation",
            description="Apply a pending adaptation (by id) to the active plan, or all of them.",
            inputSchema={
                "type": "object",
                "properties": {
                    "adaptation_id": {"type": "string", "description": "Adaptation id from analyze_performance"},
                    "all": {"type": "boolean", "description": "Apply every pending adaptation"},
                    "user_id": USER_PROPERTY
                }
            }
        ),
        types.Tool(
            name="dismiss_adaptation",
            description="Discard a pending adaptation without applying it.",
            inputSchema={
                "type": "object",
                "properties": {
                    "adaptation_id": {"type": "string", "description": "Adaptation id"},
                    "user_id": USER_PROPERTY
                },
                "required": ["adaptation_id"]
            }
        )
    ]


@server.call_tool()
async def call_tool_handler(name: str, arguments: dict[str, Any]) -> list[types.TextContent]:
    """Handle tool calls."""
    arguments = arguments or {}

    try:
        service = get_service(arguments.get("user_id"))
    except Exception as e:
        logger.error(f"Could not initialize service: {str(e)}", exc_info=True)
        return _text(f"❌ Could not initialize: {str(e)}")

    try:
        if name == "generate_plans":
            answer_keys = ["goal", "experience", "frequency", "equipment",
                           "injuries", "session_length", "exclusions"]
            answers = {k: str(arguments[k]) for k in answer_keys if arguments.get(k) is not None}

            if answers:
                request = await service.save_profile(answers)
            else:
                request = await service.load_request()
                if request is None:
                    return _text("❌ No stored profile. Provide at least a goal and experience.")

            plans = await service.generate_plan_variations(request, arguments.get("count"))
            return _text({
                "request": request.to_dict(),
                "plans": [p.to_dict() for p in plans]
            })

        elif name == "select_plan":
            index = int(arguments["index"])
            if index < 1:
                return _text("❌ index starts at 1")

            request = await service.load_request()
            if request is None:
                return _text("❌ No stored profile. Call generate_plans first.")

            plans = await service.generate_plan_variations(request, index)
            selected = await service.select_plan(plans[index - 1])
            return _text(f"✅ Active plan: {selected.name} ({selected.id})")

        elif name == "get_active_plan":
            context = await service.load_context()
            if context.active_plan is None:
                return _text("❌ No active plan. Call generate_plans then select_plan.")
            return _text({
                "plan": context.active_plan.to_dict(),
                "sessions_logged": len(context.history),
                "pending_adaptations": [a.to_dict() for a in context.pending]
            })

        elif name == "log_session":
            data = dict(arguments["session"])
            data.setdefault("date", date.today().isoformat())
            if not data.get("plan_id"):
                active = await service.load_active_plan()
                if active is None:
                    return _text("❌ Session has no plan_id and there is no active plan")
                data["plan_id"] = active.id

            total = await service.log_session(SessionLog.from_dict(data))
            return _text(f"✅ Session logged ({total} total)")

        elif name == "analyze_performance":
            if await service.load_active_plan() is None:
                return _text("❌ No active plan to analyze")
            adaptations = await service.analyze_performance()
            return _text([a.to_dict() for a in adaptations])

        elif name == "apply_adaptation":
            if arguments.get("all"):
                updated = await service.apply_all()
                if updated is None:
                    return _text("Nothing pending to apply")
            elif arguments.get("adaptation_id"):
                updated = await service.apply_adaptation(arguments["adaptation_id"])
            else:
                return _text("❌ Provide adaptation_id or all=true")
            return _text(updated.to_dict())

        elif name == "dismiss_adaptation":
            adaptation_id = arguments["adaptation_id"]
            if await service.dismiss_adaptation(adaptation_id):
                return _text(f"✅ Dismissed {adaptation_id}")
            return _text(f"❌ No pending adaptation with id {adaptation_id}")

        else:
            return _text(f"❌ Unknown tool: {name}")

    except VitalityError as e:
        logger.warning(f"{name} failed: {str(e)}")
        return _text(f"❌ {str(e)}")
    except (KeyError, ValueError) as e:
        logger.error(f"Invalid arguments for {name}: {str(e)}")
        return _text(f"❌ Invalid arguments: {str(e)}")
    except Exception as e:
        logger.error(f"Error in {name}: {str(e)}", exc_info=True)
        return _text(f"❌ Error: {str(e)}")


async def run():
    """Run the MCP server."""
    logger.info("Starting Vitality Coach MCP Server")

    try:
        async with stdio_server() as (read_stream, write_stream):
            await server.run(
                read_stream,
                write_stream,
                server.create_initialization_options()
            )
    except Exception as e:
        logger.error(f"Server error: {str(e)}", exc_info=True)
        raise
    finally:
        if _store is not None:
            _store.close()
        logger.info("Vitality Coach MCP Server stopped")


def main():
    asyncio.run(run())


if __name__ == "__main__":
    main()
