"""Command line front end.

Examples:
    content-mapper analyze home.png -k "seo, landing page" -a "Small business owners"
    content-mapper batch shots/*.png -k "pricing" -a "Developers" --url https://example.com
    content-mapper history list
    content-mapper review
"""

import asyncio
import sys
from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path
from typing import NoReturn

import click

from content_mapper.analysis.client import AnalysisClient, create_client
from content_mapper.analysis.models import (
    AnalysisConfig,
    AnalysisResult,
    BrandVoiceProfile,
    ExportFormat,
    HistoryRecord,
    ImageInput,
    ToneType,
)
from content_mapper.analysis.prompts import RefineContext
from content_mapper.config import Settings, get_settings
from content_mapper.exceptions import ContentMapperError
from content_mapper.export.formatters import export_analysis
from content_mapper.logging import setup_logging
from content_mapper.orchestration.batch import BatchOrchestrator
from content_mapper.orchestration.competitor import compare_competitors
from content_mapper.session import AnalysisSession, parse_keywords, validate_inputs
from content_mapper.shortcuts import (
    FocusTarget,
    Shortcut,
    ShortcutCategory,
    ShortcutDispatcher,
    default_shortcuts,
    format_shortcut,
    parse_chord,
)
from content_mapper.storage.backends import JSONFileStorage
from content_mapper.storage.compare import compare_analyses
from content_mapper.storage.store import PREFERENCE_KEYS, LocalStore

EXPORT_FORMATS = [f.value for f in ExportFormat]


@dataclass
class AppContext:
    """Shared state handed to every command."""

    settings: Settings
    store: LocalStore
    client_factory: Callable[[], AnalysisClient]
    _client: AnalysisClient | None = field(default=None, repr=False)

    @property
    def client(self) -> AnalysisClient:
        if self._client is None:
            self._client = self.client_factory()
        return self._client


def build_context(settings: Settings, storage_path: Path | None = None) -> AppContext:
    """Wire the store and a lazily created client from settings."""

    def client_factory() -> AnalysisClient:
        if not settings.model_enabled:
            raise ContentMapperError(
                f"No API key configured for provider '{settings.model_provider.value}'",
                code="configuration_error",
            )
        return create_client(settings)

    storage = JSONFileStorage(storage_path or settings.storage_path)
    return AppContext(
        settings=settings,
        store=LocalStore(storage, namespace=settings.storage_namespace),
        client_factory=client_factory,
    )


def fail(message: str) -> NoReturn:
    click.echo(f"Error: {message}", err=True)
    sys.exit(1)


def require_client(app: AppContext) -> AnalysisClient:
    """Return the analysis client or exit when no provider is configured."""
    try:
        return app.client
    except ContentMapperError as e:
        fail(e.message)


def load_images(paths: tuple[str, ...]) -> list[ImageInput]:
    return [ImageInput.from_path(p) for p in paths]


def echo_result(result: AnalysisResult) -> None:
    """Print a short summary of an analysis."""
    click.echo(f"Page type: {result.page_type}")
    click.echo(f"Overall SEO score: {result.overall_seo_score:g}/100")
    click.echo(f"\nSections ({len(result.sections)}):")
    for i, section in enumerate(result.sections, start=1):
        click.echo(f"  {i}. {section.label} [{section.type.value}] {section.seo_score:g}/100")
    if result.recommendations:
        click.echo("\nRecommendations:")
        for i, rec in enumerate(result.recommendations, start=1):
            click.echo(f"  {i}. {rec}")


def echo_section(index: int, result: AnalysisResult, session: AnalysisSession) -> None:
    section = session.selected_section
    if section is None:
        return
    click.echo(f"\n[{index}/{len(result.sections)}] {section.label} ({section.type.value})")
    click.echo(f"SEO score: {section.seo_score:g}/100  Keywords: {', '.join(section.keywords)}")
    click.echo(section.suggested_content)


@click.group()
@click.option(
    "--storage",
    "storage_path",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="JSON file holding history and preferences",
)
@click.pass_context
def cli(ctx: click.Context, storage_path: Path | None):
    """Map website screenshots to SEO-optimized content."""
    if ctx.obj is None:
        ctx.obj = build_context(get_settings(), storage_path)


# Analysis


def analysis_options(func):
    func = click.option("--url", "website_url", default="", help="Website URL")(func)
    func = click.option(
        "--audience", "-a", "target_audience", required=True, help="Target audience"
    )(func)
    func = click.option(
        "--keywords", "-k", required=True, help="Comma-separated target keywords"
    )(func)
    return func


@cli.command()
@click.argument("image", type=click.Path(exists=True, dir_okay=False))
@analysis_options
@click.option("--format", "fmt", type=click.Choice(EXPORT_FORMATS), default=None)
@click.option("--export/--no-export", default=False, help="Write a report file")
@click.pass_obj
def analyze(
    app: AppContext,
    image: str,
    keywords: str,
    target_audience: str,
    website_url: str,
    fmt: str | None,
    export: bool,
):
    """Analyze one screenshot."""
    session = AnalysisSession(require_client(app), app.store)
    try:
        result = asyncio.run(
            session.analyze(
                ImageInput.from_path(image),
                keywords,
                target_audience,
                website_url=website_url,
            )
        )
    except ContentMapperError as e:
        fail(e.message)

    echo_result(result)
    if export or fmt:
        fmt = fmt or app.store.get_preferences().default_export_format
        path = export_analysis(result, fmt, session.config, app.settings.export_dir)
        click.echo(f"\nReport written to {path}")
    session.close()


@cli.command()
@click.argument("images", nargs=-1, required=True, type=click.Path(exists=True, dir_okay=False))
@analysis_options
@click.pass_obj
def batch(app: AppContext, images: tuple[str, ...], keywords: str, target_audience: str, website_url: str):
    """Analyze several screenshots one after another."""
    client = require_client(app)
    inputs = load_images(images)
    keyword_list = parse_keywords(keywords)
    try:
        for image in inputs:
            validate_inputs(image, keyword_list, target_audience)
    except ContentMapperError as e:
        fail(e.message)

    preferences = app.store.get_preferences()
    brand_voice = app.store.get_brand_voice() if preferences.auto_load_brand_voice else None

    def on_progress(percent: float, label: str) -> None:
        click.echo(f"[{percent:5.1f}%] {label}")

    orchestrator = BatchOrchestrator(client, progress_callback=on_progress)
    job = asyncio.run(
        orchestrator.run(
            images=inputs,
            website_url=website_url,
            keywords=keyword_list,
            target_audience=target_audience,
            brand_voice=brand_voice,
        )
    )

    config = AnalysisConfig(
        website_url=website_url, keywords=keyword_list, target_audience=target_audience
    )
    click.echo(f"\n{len(job.results)} of {job.total} screenshot(s) analyzed")
    for result in job.results:
        click.echo(f"  {result.image_file_name}: {result.overall_seo_score:g}/100 ({result.page_type})")
        if preferences.auto_save_history:
            app.store.save_history(result, config)
        client.images.revoke(result.image_url)
    for failure in job.failures:
        click.echo(f"  {failure.file_name}: FAILED ({failure.error})", err=True)

    if not job.results:
        sys.exit(1)


@cli.command()
@click.argument("your_image", type=click.Path(exists=True, dir_okay=False))
@click.argument("competitor_images", nargs=-1, required=True, type=click.Path(exists=True, dir_okay=False))
@analysis_options
@click.pass_obj
def compare(
    app: AppContext,
    your_image: str,
    competitor_images: tuple[str, ...],
    keywords: str,
    target_audience: str,
    website_url: str,
):
    """Compare your page against competitor screenshots."""
    client = require_client(app)
    keyword_list = parse_keywords(keywords)
    try:
        yours = ImageInput.from_path(your_image)
        validate_inputs(yours, keyword_list, target_audience)
        comparison = asyncio.run(
            compare_competitors(
                client,
                yours,
                load_images(competitor_images),
                website_url,
                keyword_list,
                target_audience,
            )
        )
    except ContentMapperError as e:
        fail(e.message)

    click.echo(f"Your page: {comparison.your_analysis.overall_seo_score:g}/100")
    for i, (analysis, gap) in enumerate(
        zip(comparison.competitor_analyses, comparison.score_gaps, strict=True), start=1
    ):
        click.echo(f"Competitor {i}: {analysis.overall_seo_score:g}/100 (gap {gap:+g})")

    if not comparison.insights:
        click.echo("\nNo competitive insights available")
    for insight in comparison.insights:
        click.echo(f"\n{insight.competitor_name}")
        for label, items in (
            ("Strengths", insight.strengths),
            ("Weaknesses", insight.weaknesses),
            ("Differentiators", insight.unique_differentiators),
            ("Keyword gaps", insight.keyword_gaps),
        ):
            if items:
                click.echo(f"  {label}: {'; '.join(items)}")

    for analysis in (comparison.your_analysis, *comparison.competitor_analyses):
        client.images.revoke(analysis.image_url)


@cli.command()
@click.argument("content")
@click.option("--feedback", "-f", required=True, help="What to change")
@click.option("--section-type", default="body_text", help="Type of the section being refined")
@click.option("--keywords", "-k", default="", help="Comma-separated target keywords")
@click.option("--audience", "-a", "target_audience", default="", help="Target audience")
@click.pass_obj
def refine(app: AppContext, content: str, feedback: str, section_type: str, keywords: str, target_audience: str):
    """Rewrite a piece of content from feedback."""
    client = require_client(app)
    context = RefineContext(
        section_type=section_type,
        keywords=parse_keywords(keywords),
        target_audience=target_audience,
    )
    try:
        refined = asyncio.run(client.refine(content, feedback, context))
    except ContentMapperError as e:
        fail(e.message)
    click.echo(refined)


# History


@cli.group()
def history():
    """Browse and manage saved analyses."""
    pass


@history.command("list")
@click.pass_obj
def history_list(app: AppContext):
    """List saved analyses, newest first."""
    read = app.store.read_history()
    if not read.ok:
        click.echo(f"Warning: {read.error}", err=True)
    if not read.value:
        click.echo("No saved analyses")
        return
    for record in read.value:
        name = record.result.image_file_name or "-"
        click.echo(
            f"{record.id}  {record.result.overall_seo_score:>5g}  "
            f"{record.result.page_type:<16} {name}"
        )


def _get_record(app: AppContext, record_id: str) -> HistoryRecord:
    record = app.store.get_by_id(record_id)
    if record is None:
        fail(f"No analysis with id {record_id}")
    return record


@history.command("show")
@click.argument("record_id")
@click.option("--format", "fmt", type=click.Choice(EXPORT_FORMATS), default=None, help="Also write a report")
@click.pass_obj
def history_show(app: AppContext, record_id: str, fmt: str | None):
    """Show one saved analysis."""
    record = _get_record(app, record_id)
    click.echo(f"Keywords: {record.config.keywords_text}")
    click.echo(f"Audience: {record.config.target_audience}\n")
    echo_result(record.result)
    if fmt:
        path = export_analysis(record.result, fmt, record.config, app.settings.export_dir)
        click.echo(f"\nReport written to {path}")


@history.command("delete")
@click.argument("record_id")
@click.pass_obj
def history_delete(app: AppContext, record_id: str):
    """Delete one saved analysis."""
    _get_record(app, record_id)
    app.store.delete_by_id(record_id)
    click.echo(f"Deleted {record_id}")


@history.command("clear")
@click.confirmation_option(prompt="Delete all saved analyses?")
@click.pass_obj
def history_clear(app: AppContext):
    """Delete every saved analysis."""
    app.store.clear_all()
    click.echo("History cleared")


@history.command("export")
@click.argument("output", type=click.Path(dir_okay=False, path_type=Path), required=False)
@click.pass_obj
def history_export(app: AppContext, output: Path | None):
    """Export history, brand voice and preferences as JSON."""
    payload = app.store.export_history_as_json()
    if output is None:
        click.echo(payload)
        return
    output.write_text(payload, encoding="utf-8")
    click.echo(f"Exported to {output}")


@history.command("import")
@click.argument("source", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.pass_obj
def history_import(app: AppContext, source: Path):
    """Restore a JSON export, replacing the stored data it contains."""
    if not app.store.import_history_from_json(source.read_text(encoding="utf-8")):
        fail(f"Could not import {source}")
    click.echo(f"Imported {source}")


@history.command("stats")
@click.pass_obj
def history_stats(app: AppContext):
    """Show statistics across saved analyses."""
    stats = app.store.get_statistics()
    click.echo(f"Total analyses: {stats.total_analyses}")
    click.echo(f"Average SEO score: {stats.average_seo_score:.1f}")
    if stats.top_keywords:
        click.echo("\nTop keywords:")
        for keyword, count in stats.top_keywords:
            click.echo(f"  {keyword}: {count}")
    if stats.top_page_types:
        click.echo("\nPage types:")
        for page_type, count in stats.top_page_types:
            click.echo(f"  {page_type}: {count}")
    if stats.analysis_over_time:
        click.echo("\nAnalyses per day:")
        for day, count in stats.analysis_over_time:
            click.echo(f"  {day}: {count}")


@history.command("diff")
@click.argument("before_id")
@click.argument("after_id")
@click.pass_obj
def history_diff(app: AppContext, before_id: str, after_id: str):
    """Compare two saved analyses."""
    before = _get_record(app, before_id)
    after = _get_record(app, after_id)
    delta = compare_analyses(before.result, after.result)

    click.echo(f"SEO score delta: {delta.delta_display}")
    if delta.matched_by != "id":
        click.echo(f"(sections matched by {delta.matched_by})")
    for label, items in (
        ("Added", delta.sections_added),
        ("Removed", delta.sections_removed),
        ("Improved", delta.sections_improved),
        ("Declined", delta.sections_declined),
    ):
        if items:
            click.echo(f"{label}: {', '.join(items)}")


# Brand voice


@cli.group("brand-voice")
def brand_voice():
    """Manage the brand voice profile."""
    pass


@brand_voice.command("set")
@click.option("--tone", type=click.Choice([t.value for t in ToneType]), default=ToneType.PROFESSIONAL.value)
@click.option("--vocabulary", multiple=True, help="Preferred word (repeatable)")
@click.option("--structure", type=click.Choice(["simple", "complex", "mixed"]), default="mixed")
@click.option("--formality", type=click.IntRange(0, 10), default=5)
@click.option("--reading-level", type=click.IntRange(min=1), default=8)
@click.option("--avoid", multiple=True, help="Word to avoid (repeatable)")
@click.pass_obj
def brand_voice_set(
    app: AppContext,
    tone: str,
    vocabulary: tuple[str, ...],
    structure: str,
    formality: int,
    reading_level: int,
    avoid: tuple[str, ...],
):
    """Replace the brand voice profile."""
    profile = BrandVoiceProfile(
        tone=tone,
        vocabulary=list(vocabulary),
        sentence_structure=structure,
        formality_level=formality,
        target_reading_level=reading_level,
        avoid_words=list(avoid),
    )
    if not app.store.save_brand_voice(profile).ok:
        fail("Could not save brand voice")
    click.echo("Brand voice saved")


@brand_voice.command("show")
@click.pass_obj
def brand_voice_show(app: AppContext):
    """Show the brand voice profile."""
    profile = app.store.get_brand_voice()
    if profile is None:
        click.echo("No brand voice profile")
        return
    click.echo(f"Tone: {profile.tone.value}")
    click.echo(f"Sentence structure: {profile.sentence_structure}")
    click.echo(f"Formality: {profile.formality_level}/10")
    click.echo(f"Reading level: grade {profile.target_reading_level}")
    if profile.vocabulary:
        click.echo(f"Vocabulary: {', '.join(profile.vocabulary)}")
    if profile.avoid_words:
        click.echo(f"Avoid: {', '.join(profile.avoid_words)}")


@brand_voice.command("clear")
@click.pass_obj
def brand_voice_clear(app: AppContext):
    """Remove the brand voice profile."""
    app.store.clear_brand_voice()
    click.echo("Brand voice cleared")


# Preferences


@cli.group()
def prefs():
    """Show or change preferences."""
    pass


@prefs.command("show")
@click.pass_obj
def prefs_show(app: AppContext):
    """Show all preferences."""
    for name, value in app.store.get_preferences().model_dump(mode="json").items():
        click.echo(f"{name} = {value}")


@prefs.command("set")
@click.argument("assignments", nargs=-1, required=True)
@click.pass_obj
def prefs_set(app: AppContext, assignments: tuple[str, ...]):
    """Set preferences, e.g. ``theme=light variant_count=4``."""
    updates = {}
    for assignment in assignments:
        name, sep, value = assignment.partition("=")
        if not sep or not name.strip():
            fail(f"Expected NAME=VALUE, got '{assignment}'")
        updates[name.strip()] = value.strip()

    unknown = sorted(set(updates) - PREFERENCE_KEYS)
    if unknown:
        fail(f"Unknown preference(s): {', '.join(unknown)}")

    saved = app.store.save_preferences(updates)
    if not saved.ok:
        fail(f"Preferences not saved: {saved.error}")
    click.echo("Preferences saved")


# Shortcuts and review


@cli.command()
def shortcuts():
    """List keyboard shortcuts used by ``review``."""
    dispatcher = ShortcutDispatcher(default_shortcuts())
    for category, entries in dispatcher.by_category().items():
        click.echo(f"{category.value.title()}:")
        for shortcut in entries:
            click.echo(f"  {format_shortcut(shortcut):<14} {shortcut.description}")


@cli.command()
@click.argument("record_id", required=False)
@click.pass_obj
def review(app: AppContext, record_id: str | None):
    """Step through a saved analysis with keyboard chords.

    Reads one chord per line from stdin (``j``, ``k``, ``ctrl+shift+c``,
    ``ctrl+e``, ``/``); ``q`` quits.
    """
    if record_id:
        record = _get_record(app, record_id)
    else:
        records = app.store.get_history()
        if not records:
            fail("No saved analyses to review")
        record = records[0]

    # Review only reads the store; no client is needed
    session = AnalysisSession(client=None, store=app.store)
    session.show(record.result, record.config)
    result = record.result
    done = False

    def position() -> int:
        ids = [s.id for s in result.sections]
        return ids.index(session.selected_section_id) + 1

    def show_current() -> None:
        echo_section(position(), result, session)

    def next_section() -> None:
        session.next_section()
        show_current()

    def prev_section() -> None:
        session.previous_section()
        show_current()

    def copy() -> None:
        section = session.selected_section
        if section:
            click.echo(section.suggested_content)

    def export() -> None:
        fmt = app.store.get_preferences().default_export_format
        path = export_analysis(result, fmt, record.config, app.settings.export_dir)
        click.echo(f"Report written to {path}")

    def toggle_help() -> None:
        for shortcut in dispatcher.shortcuts:
            click.echo(f"  {format_shortcut(shortcut):<14} {shortcut.description}")

    def quit_review() -> None:
        nonlocal done
        done = True

    table = default_shortcuts(
        {
            "next_section": next_section,
            "prev_section": prev_section,
            "copy": copy,
            "export": export,
            "toggle_help": toggle_help,
        }
    )
    table.append(Shortcut("q", quit_review, "Quit review", ShortcutCategory.GENERAL))
    dispatcher = ShortcutDispatcher(table)

    echo_result(result)
    show_current()
    for line in click.get_text_stream("stdin"):
        chord = line.strip()
        if not chord:
            continue
        try:
            event = parse_chord(chord)
        except ContentMapperError as e:
            click.echo(e.message, err=True)
            continue
        event.target = FocusTarget()
        if not dispatcher.handle(event):
            click.echo(f"No shortcut for '{chord}'", err=True)
        if done:
            break


def main() -> None:
    """Console script entry point."""
    setup_logging()
    cli()


if __name__ == "__main__":
    main()
