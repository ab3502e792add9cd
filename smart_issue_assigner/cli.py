"""Command-line interface for the smart issue assigner."""

import json
import logging
from typing import Optional, Tuple

import click
import uvicorn
from dotenv import load_dotenv
from sqlalchemy.exc import SQLAlchemyError

from smart_issue_assigner.agents.errors import MatchingError
from smart_issue_assigner.agents.matchmaker import IssueMatchmaker
from smart_issue_assigner.api.base import GatewayError
from smart_issue_assigner.api.server import create_app
from smart_issue_assigner.config.settings import SystemConfig
from smart_issue_assigner.database.connection import DatabaseManager
from smart_issue_assigner.models.common import AssignmentStatus
from smart_issue_assigner.models.validation import ValidationError
from smart_issue_assigner.utils.logging import setup_logging

logger = logging.getLogger(__name__)


def parse_skill(value: str) -> dict:
    """Parse ``Name:proficiency`` (proficiency 0-100, default 50)."""
    name, _, level = value.rpartition(':')
    if not name:
        return {"name": value.strip(), "proficiency": 50}
    try:
        proficiency = int(level)
    except ValueError:
        raise click.BadParameter(f"Invalid proficiency in '{value}', expected Name:0-100")
    return {"name": name.strip(), "proficiency": proficiency}


def _build_matchmaker(ctx):
    if 'matchmaker' not in ctx.obj:
        ctx.obj['matchmaker'] = IssueMatchmaker.from_config(ctx.obj['config'])
    return ctx.obj['matchmaker']


def _fail(message: str, error: Exception):
    click.echo(f"❌ {message}: {error}", err=True)
    raise click.Abort()


@click.group()
@click.option('--config-file', type=click.Path(dir_okay=False), help='JSON configuration file')
@click.option('--database-url', help='Database connection URL')
@click.option('--log-level', help='Logging level')
@click.pass_context
def cli(ctx, config_file: Optional[str], database_url: Optional[str], log_level: Optional[str]):
    """Smart Issue Assigner CLI."""
    load_dotenv()

    config = SystemConfig.from_file(config_file) if config_file else SystemConfig.from_env()
    if database_url:
        config.database.url = database_url
    if log_level:
        config.logging.level = log_level
    setup_logging(config.logging)

    ctx.ensure_object(dict)
    ctx.obj['config'] = config


@cli.command('init-db')
@click.option('--reset', is_flag=True, help='Drop existing tables first (destroys all data)')
@click.pass_context
def init_db(ctx, reset: bool):
    """Initialize the database and create all tables."""
    if reset:
        click.confirm("This will delete the registry and every assignment record. Continue?", abort=True)

    try:
        manager = DatabaseManager(ctx.obj['config'].database)
        if reset:
            manager.drop_tables()
            click.echo("🗑️  Existing tables dropped")
        manager.create_tables()
        click.echo("✅ Database initialized successfully!")
    except SQLAlchemyError as e:
        _fail("Failed to initialize database", e)


@cli.command('check-config')
@click.pass_context
def check_config(ctx):
    """Validate configuration and test connectivity."""
    config = ctx.obj['config']

    click.echo("🔍 Validating configuration...")
    if not config.validate():
        click.echo("❌ Configuration is invalid, see the log for details", err=True)
        raise click.Abort()

    matchmaker = _build_matchmaker(ctx)

    if not matchmaker.db_manager.health_check():
        click.echo("❌ Database connection failed", err=True)
        raise click.Abort()
    click.echo("✅ Database connection successful")

    if not matchmaker.github_client.test_connection():
        click.echo("❌ GitHub connection failed", err=True)
        raise click.Abort()
    click.echo("✅ GitHub connection successful")

    try:
        rate_limit = matchmaker.github_client.get_rate_limit_status()
        click.echo(f"📊 GitHub API rate limit: {rate_limit['remaining']} requests remaining")
        if rate_limit['remaining'] is not None and rate_limit['remaining'] < 100:
            click.echo("⚠️  Warning: Low GitHub API rate limit remaining")
    except GatewayError as e:
        click.echo(f"⚠️  Could not check rate limits: {e}")

    if matchmaker.gemini_client is None:
        click.echo("ℹ️  Gemini not configured, requirement extraction and roadmaps use fallbacks")
    else:
        click.echo(f"✅ Gemini model: {matchmaker.gemini_client.model}")

    analyzer = type(matchmaker.profile_resolver.history_analyzer).__name__
    click.echo(f"✅ History analysis: {analyzer}")


@cli.command()
@click.argument('username')
@click.option('--name', help='Display name')
@click.option('--email', help='Contact email')
@click.option('--skill', 'skills', multiple=True, required=True, help='Skill as Name:proficiency')
@click.option('--language', 'languages', multiple=True, help='Language in the tech stack')
@click.option('--framework', 'frameworks', multiple=True, help='Framework in the tech stack')
@click.option('--tool', 'tools', multiple=True, help='Tool in the tech stack')
@click.option('--database', 'databases', multiple=True, help='Database in the tech stack')
@click.option('--strength', 'strengths', multiple=True, help='Notable strength')
@click.option('--tier', type=click.Choice(['beginner', 'intermediate', 'advanced', 'expert']),
              default='intermediate', show_default=True)
@click.option('--years', type=float, default=0.0, show_default=True, help='Years of experience')
@click.pass_context
def register(ctx, username: str, name: Optional[str], email: Optional[str], skills: Tuple[str, ...],
             languages, frameworks, tools, databases, strengths, tier: str, years: float):
    """Register an onboarded contributor."""
    data = {
        "github_username": username,
        "name": name,
        "email": email,
        "skills": [parse_skill(skill) for skill in skills],
        "tech_stack": {
            "languages": list(languages),
            "frameworks": list(frameworks),
            "tools": list(tools),
            "databases": list(databases),
        },
        "strengths": list(strengths),
        "expertise_tier": tier,
        "experience_years": years,
    }
    try:
        profile = _build_matchmaker(ctx).register_contributor(data)
    except ValidationError as e:
        _fail("Invalid contributor profile", e)
    click.echo(f"✅ Registered {profile.identity} ({profile.expertise_tier.value}, "
               f"{len(profile.skills)} skills)")


@cli.command()
@click.argument('organization')
@click.argument('repository')
@click.argument('issue_number', type=int)
@click.option('-k', '--top', 'k', type=int, help='Shortlist size')
@click.option('--json', 'as_json', is_flag=True, help='Print the raw JSON shortlist')
@click.pass_context
def shortlist(ctx, organization: str, repository: str, issue_number: int, k: Optional[int], as_json: bool):
    """Rank the commenters of ORGANIZATION's REPOSITORY issue ISSUE_NUMBER."""
    try:
        result = _build_matchmaker(ctx).shortlist_candidates(organization, repository, issue_number, k=k)
    except (MatchingError, GatewayError) as e:
        _fail("Shortlist failed", e)

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
        return

    click.echo(f"📋 {repository}#{issue_number}: {result.issue.title}")
    required = ", ".join(f"{req.skill} ({req.importance})" for req in result.requirement.required_skills)
    click.echo(f"   Requires: {required} [{result.requirement.expertise_tier.value}]")
    click.echo(f"   Evaluated {result.total_evaluated} candidates\n")
    for position, candidate in enumerate(result.candidates, start=1):
        scores = candidate.scores
        click.echo(
            f"{position}. @{candidate.identity:<20} final={scores.final:>3} "
            f"skill={scores.skill_match:>3} activity={scores.activity:>3} "
            f"workload={scores.workload:>3} ({candidate.profile.origin.value})"
        )


@cli.command()
@click.argument('organization')
@click.argument('repository')
@click.argument('issue_number', type=int)
@click.argument('username')
@click.pass_context
def assign(ctx, organization: str, repository: str, issue_number: int, username: str):
    """Assign USERNAME to the issue, or post a recommendation if GitHub refuses."""
    try:
        outcome = _build_matchmaker(ctx).assign_candidate(organization, repository, issue_number, username)
    except (MatchingError, GatewayError) as e:
        _fail("Assignment failed", e)

    if outcome.is_recommendation:
        click.echo(f"⚠️  Could not assign @{username}; posted a recommendation instead")
    else:
        click.echo(f"✅ Assigned @{username} to {repository}#{issue_number}")
    click.echo(f"   Final score: {outcome.scores.final}")
    if outcome.comment_url:
        click.echo(f"   Comment: {outcome.comment_url}")


@cli.command()
@click.argument('organization')
@click.option('--status', type=click.Choice([
    'pending', 'assigned', 'recommended', 'in_progress', 'completed', 'cancelled'
]), help='Filter by status')
@click.option('--limit', type=int, default=50, show_default=True)
@click.pass_context
def assignments(ctx, organization: str, status: Optional[str], limit: int):
    """List ORGANIZATION's assignments, newest first."""
    records = _build_matchmaker(ctx).list_assignments(
        organization, status=AssignmentStatus(status) if status else None, limit=limit
    )
    if not records:
        click.echo("No assignments found")
        return
    for record in records:
        click.echo(
            f"{record.id}  {record.repository}#{record.issue_number:<6} "
            f"@{record.assigned_to:<20} {record.status.value:<12} final={record.final_score}"
        )


@cli.command('set-status')
@click.argument('record_id')
@click.argument('status', type=click.Choice(['assigned', 'in_progress', 'completed', 'cancelled']))
@click.pass_context
def set_status(ctx, record_id: str, status: str):
    """Move assignment RECORD_ID to STATUS."""
    try:
        record = _build_matchmaker(ctx).update_assignment_status(record_id, AssignmentStatus(status))
    except (MatchingError, GatewayError) as e:
        _fail("Status update failed", e)
    click.echo(f"✅ {record.repository}#{record.issue_number} is now {record.status.value}")


@cli.command()
@click.option('--host', default='0.0.0.0', show_default=True)
@click.option('--port', default=8000, type=int, show_default=True)
@click.pass_context
def serve(ctx, host: str, port: int):
    """Run the HTTP API."""
    config = ctx.obj['config']
    if not config.validate():
        raise click.Abort()

    app = create_app(_build_matchmaker(ctx))
    logger.info(f"Starting API on {host}:{port}")
    uvicorn.run(app, host=host, port=port, log_level=config.logging.level.lower())


if __name__ == '__main__':
    cli()
