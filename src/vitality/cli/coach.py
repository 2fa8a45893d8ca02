#!/usr/bin/env python3
"""
Vitality CLI - COACH

Internal Codename: COACH
Command-line interface for plan generation and adaptation.

Usage:
    vitality plan [--goal GOAL] [--experience TEXT] [--frequency TEXT] [--count N] [--json]
    vitality select INDEX
    vitality show
    vitality log SESSION_FILE
    vitality analyze
    vitality apply [ADAPTATION_ID] [--all]
    vitality dismiss ADAPTATION_ID
    vitality catalog list [--category CAT] [--muscle GROUP] [--difficulty LEVEL]
    vitality catalog sync
"""

import asyncio
import json
import logging
import sys
from datetime import date
from typing import List, Optional

import click

from vitality.catalog import ExerciseFilter, catalog_from_settings, load_catalog
from vitality.config import Settings
from vitality.errors import VitalityError
from vitality.models import Adaptation, Category, Level, SessionLog, WeeklyPlan
from vitality.service import ProgramService
from vitality.store import create_store

logger = logging.getLogger(__name__)

PRIORITY_COLORS = {'high': 'red', 'medium': 'yellow', 'low': 'green'}


def _fail(message: str):
    click.echo(f"❌ {message}")
    sys.exit(1)


def _run(ctx: click.Context, operation):
    """Build a service, run an async operation against it, close the store."""
    settings: Settings = ctx.obj['settings']
    try:
        store = create_store(settings.store_backend, settings.postgres_dsn, settings.store_path)
        catalog = catalog_from_settings(settings)
    except Exception as e:
        _fail(f"Could not initialize: {e}")

    service = ProgramService(store, catalog, settings.engine, ctx.obj['user'])
    try:
        return asyncio.run(operation(service))
    except VitalityError as e:
        _fail(str(e))
    except Exception as e:
        logger.debug("Command failed", exc_info=True)
        _fail(f"Error: {e}")
    finally:
        store.close()


def format_plan_text(plan: WeeklyPlan, index: Optional[int] = None) -> str:
    """Human-readable rendering of a weekly plan."""
    lines = ["=" * 60]
    header = f"{index}. {plan.name}" if index is not None else plan.name
    lines.append(header)
    lines.append(f"id: {plan.id}   {plan.days_per_week} days/week, {plan.duration_minutes} min sessions")
    lines.append("=" * 60)

    for day in plan.days:
        lines.append(f"\n{day.day_name} - {day.focus} ({day.duration_minutes} min)")
        lines.append("─" * 60)
        for e in day.exercises:
            load = f"{e.weight:g}" if e.weight else "BW"
            rest = f"{e.rest_seconds}s" if e.rest_seconds else "-"
            lines.append(f"  {e.name:32} {e.sets} x {e.reps:<3} {load:>6}  rest {rest}")

    if plan.applied_adaptations:
        lines.append(f"\nApplied: {', '.join(a.title for a in plan.applied_adaptations)}")
    return "\n".join(lines)


def format_adaptations_text(adaptations: List[Adaptation]):
    click.echo("=" * 60)
    click.echo(f"SUGGESTED ADAPTATIONS ({len(adaptations)})")
    click.echo("=" * 60)

    for a in adaptations:
        click.echo(f"\n[{a.id}]")
        click.echo(f"{a.title}  ", nl=False)
        click.secho(a.priority.value.upper(), fg=PRIORITY_COLORS[a.priority.value], nl=False)
        click.echo(f"  ({a.confidence}% confidence)")
        click.echo(f"  {a.description}")
        click.echo(f"  Why: {a.reason}")
        for c in a.changes:
            target = c.exercise_name or "plan"
            click.echo(f"    {target}: {c.field} {c.old_value} → {c.new_value}")

    click.echo("\n" + "=" * 60)


@click.group()
@click.option('--config', 'config_path', type=click.Path(), help='Path to vitality.yaml')
@click.option('--user', default='default', help='User id for stored data')
@click.pass_context
def cli(ctx: click.Context, config_path: Optional[str], user: str):
    """
    Vitality - adaptive workout programs.

    FORGE builds the week, the analyzer keeps it honest.
    """
    settings = Settings.load(config_path)
    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )
    ctx.obj = {'settings': settings, 'user': user}


@cli.command()
@click.option('--goal', help='Training goal, free text (e.g. "build muscle and lose fat")')
@click.option('--experience', help='Experience, free text (e.g. "2 years")')
@click.option('--frequency', help='Days per week, free text (e.g. "four")')
@click.option('--equipment', help='Available equipment (e.g. "dumbbells, bench" or "gym")')
@click.option('--injuries', help='Injuries or limitations (e.g. "bad knee")')
@click.option('--session-length', help='Session length (e.g. "45 min")')
@click.option('--exclude', help='Comma-separated exercise names to avoid')
@click.option('--count', type=int, default=None, help='Number of variations')
@click.option('--json', 'as_json', is_flag=True, help='Print plans as JSON')
@click.pass_context
def plan(ctx, goal, experience, frequency, equipment, injuries, session_length, exclude, count, as_json):
    """Generate plan variations from intake answers (stored if given)."""
    answers = {
        'goal': goal,
        'experience': experience,
        'frequency': frequency,
        'equipment': equipment,
        'injuries': injuries,
        'session_length': session_length,
        'exclusions': exclude,
    }
    answers = {k: v for k, v in answers.items() if v is not None}

    async def operation(service: ProgramService):
        if answers:
            request = await service.save_profile(answers)
        else:
            request = await service.load_request()
            if request is None:
                raise VitalityError("No stored profile. Pass --goal/--experience/--frequency first.")
        return await service.generate_plan_variations(request, count)

    plans = _run(ctx, operation)

    if as_json:
        click.echo(json.dumps([p.to_dict() for p in plans], indent=2))
        return

    for i, p in enumerate(plans, 1):
        click.echo(format_plan_text(p, i))
        click.echo("")
    click.echo(f"Select one with: vitality select <1-{len(plans)}>")


@cli.command()
@click.argument('index', type=int)
@click.pass_context
def select(ctx, index: int):
    """Make variation INDEX (1-based, from `plan`) the active plan."""
    if index < 1:
        _fail("INDEX starts at 1")

    async def operation(service: ProgramService):
        request = await service.load_request()
        if request is None:
            raise VitalityError("No stored profile. Run `vitality plan` first.")
        plans = await service.generate_plan_variations(request, index)
        return await service.select_plan(plans[index - 1])

    selected = _run(ctx, operation)
    click.echo(f"✅ Active plan: {selected.name} ({selected.id})")


@cli.command()
@click.pass_context
def show(ctx):
    """Show the active plan and pending suggestions."""
    async def operation(service: ProgramService):
        context = await service.load_context()
        return context.active_plan, context.pending, len(context.history)

    active, pending, sessions = _run(ctx, operation)
    if active is None:
        _fail("No active plan. Run `vitality plan` then `vitality select`.")

    click.echo(format_plan_text(active))
    click.echo(f"\nLogged sessions: {sessions}")
    click.echo(f"Pending suggestions: {len(pending)}")


@cli.command()
@click.argument('session_file', type=click.Path(exists=True, dir_okay=False))
@click.option('--date', 'date_str', type=str, help='Session date (YYYY-MM-DD), default: file value or today')
@click.pass_context
def log(ctx, session_file: str, date_str: Optional[str]):
    """Append a session from a JSON file to the history."""
    with open(session_file) as f:
        data = json.load(f)

    if date_str:
        data['date'] = date_str
    data.setdefault('date', date.today().isoformat())

    async def operation(service: ProgramService):
        if not data.get('plan_id'):
            active = await service.load_active_plan()
            if active is None:
                raise VitalityError("Session has no plan_id and there is no active plan")
            data['plan_id'] = active.id
        return await service.log_session(SessionLog.from_dict(data))

    total = _run(ctx, operation)
    click.echo(f"✅ Session logged ({total} total)")


@cli.command()
@click.option('--json', 'as_json', is_flag=True, help='Print suggestions as JSON')
@click.pass_context
def analyze(ctx, as_json: bool):
    """Analyze the active plan against logged sessions."""
    async def operation(service: ProgramService):
        if await service.load_active_plan() is None:
            raise VitalityError("No active plan to analyze")
        return await service.analyze_performance()

    adaptations = _run(ctx, operation)

    if as_json:
        click.echo(json.dumps([a.to_dict() for a in adaptations], indent=2))
        return

    if not adaptations:
        click.secho("✓ No adaptations suggested. Keep going.", fg='green')
        return
    format_adaptations_text(adaptations)


@cli.command()
@click.argument('adaptation_id', required=False)
@click.option('--all', 'apply_everything', is_flag=True, help='Apply every pending suggestion')
@click.pass_context
def apply(ctx, adaptation_id: Optional[str], apply_everything: bool):
    """Apply a pending suggestion to the active plan."""
    if not adaptation_id and not apply_everything:
        _fail("Give an ADAPTATION_ID or --all")

    async def operation(service: ProgramService):
        if apply_everything:
            return await service.apply_all()
        return await service.apply_adaptation(adaptation_id)

    updated = _run(ctx, operation)
    if updated is None:
        click.echo("Nothing pending to apply")
        return
    click.echo(f"✅ Plan updated: {updated.name}")
    click.echo(format_plan_text(updated))


@cli.command()
@click.argument('adaptation_id')
@click.pass_context
def dismiss(ctx, adaptation_id: str):
    """Discard a pending suggestion."""
    async def operation(service: ProgramService):
        return await service.dismiss_adaptation(adaptation_id)

    if _run(ctx, operation):
        click.echo(f"✅ Dismissed {adaptation_id}")
    else:
        _fail(f"No pending adaptation with id {adaptation_id}")


@cli.group()
def catalog():
    """Browse or seed the exercise catalog."""
    pass


@catalog.command('list')
@click.option('--category', type=click.Choice([c.value for c in Category]), help='Exercise category')
@click.option('--muscle', help='Primary muscle group')
@click.option('--difficulty', type=click.Choice([lv.value for lv in Level]), help='Difficulty')
@click.option('--equipment', help='Comma-separated equipment available')
@click.pass_context
def list_exercises(ctx, category, muscle, difficulty, equipment):
    """List exercises matching the filters."""
    settings: Settings = ctx.obj['settings']
    try:
        exercise_catalog = catalog_from_settings(settings)
    except Exception as e:
        _fail(f"Could not load catalog: {e}")

    exercise_filter = ExerciseFilter(
        categories={Category(category)} if category else None,
        muscle_groups={muscle.lower()} if muscle else None,
        difficulties={Level(difficulty)} if difficulty else None,
        equipment_available={e.strip().lower() for e in equipment.split(',')} if equipment else None,
    )
    exercises = exercise_catalog.list_exercises(exercise_filter)
    if not exercises:
        _fail("No exercises match")

    click.echo(f"\n{'Name':32} | {'Group':14} | {'Region':10} | {'Level':12} | Equipment")
    click.echo("─" * 90)
    for e in exercises:
        click.echo(
            f"{e.name:32} | {e.primary_muscle_group:14} | {e.muscle_region:10} | "
            f"{e.difficulty.value:12} | {', '.join(sorted(e.equipment))}"
        )
    click.echo(f"\n{len(exercises)} exercises")


@catalog.command()
@click.option('--source', type=click.Path(exists=True, dir_okay=False), help='YAML catalog (default: bundled)')
@click.pass_context
def sync(ctx, source: Optional[str]):
    """Write a YAML catalog into Neo4j."""
    from vitality.graph import ExerciseGraph

    settings: Settings = ctx.obj['settings']
    exercise_catalog = load_catalog(source)

    try:
        graph = ExerciseGraph.from_settings(settings)
    except ValueError as e:
        _fail(str(e))

    if not graph.verify_connectivity():
        graph.close()
        _fail(f"Could not connect to {settings.neo4j_uri}")

    try:
        graph.create_constraints()
        count = graph.upsert_exercises(e.to_dict() for e in exercise_catalog)
        click.echo(f"✅ Synced {count} exercises to Neo4j")
    except Exception as e:
        _fail(f"Error syncing catalog: {e}")
    finally:
        graph.close()


if __name__ == '__main__':
    cli()
