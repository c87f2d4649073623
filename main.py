import logging
from dataclasses import replace
from pathlib import Path
from typing import List, Optional

import typer
from InquirerPy import inquirer
from InquirerPy.base.control import Choice

from src.dictionary import (
    ArchiveFormatError,
    DictionaryExistsError,
    DictionaryRepository,
    ImportRequest,
    dictionary_titles,
    lookup_kanji_frequencies,
    lookup_term_frequencies,
    run_import,
)
from src.dictionary.config import DEFAULT_ARCHIVE_ROOT, DEFAULT_DB_PATH
from src.frequency import FrequencyObservation, group_by_dictionary

app = typer.Typer()

DB_OPTION = typer.Option(DEFAULT_DB_PATH, "--db", dir_okay=False, help="SQLite database holding installed dictionaries.")


@app.callback()
def main(verbose: bool = typer.Option(False, "--verbose", "-v", help="Log debug diagnostics.")) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )


@app.command("import")
def import_(
    archive: Optional[Path] = typer.Argument(None, exists=True, dir_okay=False, help="Dictionary zip to install."),
    url: Optional[str] = typer.Option(None, "--url", help="Download the archive from this URL instead."),
    db: Path = DB_OPTION,
    archive_root: Path = typer.Option(
        DEFAULT_ARCHIVE_ROOT,
        "--archive-root",
        file_okay=False,
        help="Directory caching downloaded archives.",
    ),
    disabled: bool = typer.Option(False, "--disabled", help="Install without enabling lookups."),
    priority: int = typer.Option(0, "--priority", help="Higher priority dictionaries are listed first."),
    replace_existing: bool = typer.Option(False, "--replace", help="Replace an installed dictionary with the same title."),
    force: bool = typer.Option(False, "--force", help="Redownload even if the archive is cached."),
) -> None:
    """
    Install a Yomitan-style dictionary archive into the local store.
    """
    try:
        request = ImportRequest.from_flags(
            archive=archive,
            url=url,
            disabled=disabled,
            priority=priority,
            replace=replace_existing,
            force=force,
        )
    except ValueError as exc:
        raise typer.BadParameter(str(exc)) from exc

    with DictionaryRepository(db) as repository:
        try:
            run_import(request, repository, archive_root=archive_root)
        except (ArchiveFormatError, DictionaryExistsError) as exc:
            typer.echo(f"Import failed: {exc}", err=True)
            raise typer.Exit(code=1) from exc


@app.command()
def dictionaries(db: Path = DB_OPTION) -> None:
    """List installed dictionaries."""
    with DictionaryRepository(db) as repository:
        installed = repository.get_all_dictionaries()
    if not installed:
        typer.echo("No dictionaries installed.")
        return
    for dictionary in installed:
        state = "on " if dictionary.is_enabled else "off"
        typer.echo(
            f"{dictionary.id:>4}  [{state}]  p={dictionary.priority:<3} {dictionary.title} ({dictionary.revision})"
        )


@app.command()
def toggle(
    db: Path = DB_OPTION,
    enable: List[int] = typer.Option([], "--enable", help="Dictionary ids to enable (skips the prompt)."),
    disable: List[int] = typer.Option([], "--disable", help="Dictionary ids to disable (skips the prompt)."),
) -> None:
    """Choose which dictionaries take part in lookups."""
    with DictionaryRepository(db) as repository:
        installed = repository.get_all_dictionaries()
        if not installed:
            typer.echo("No dictionaries installed.")
            return

        if enable or disable:
            selected = {d.id for d in installed if d.is_enabled}
            selected.update(enable)
            selected.difference_update(disable)
        else:
            choices = [
                Choice(value=d.id, name=f"{d.title} ({d.revision})", enabled=d.is_enabled) for d in installed
            ]
            selected = set(inquirer.checkbox(message="Enabled dictionaries:", choices=choices).execute())

        for dictionary in installed:
            is_enabled = dictionary.id in selected
            if is_enabled != dictionary.is_enabled:
                repository.update_dictionary(replace(dictionary, is_enabled=is_enabled))
                typer.echo(f"{'Enabled' if is_enabled else 'Disabled'} {dictionary.title}")


@app.command()
def remove(
    dictionary_id: int = typer.Argument(..., help="Id shown by the dictionaries command."),
    db: Path = DB_OPTION,
    yes: bool = typer.Option(False, "--yes", "-y", help="Do not ask for confirmation."),
) -> None:
    """Delete a dictionary and everything imported with it."""
    with DictionaryRepository(db) as repository:
        dictionary = repository.get_dictionary(dictionary_id)
        if dictionary is None:
            raise typer.BadParameter(f"No dictionary with id {dictionary_id}")
        if not yes and not inquirer.confirm(message=f"Remove '{dictionary.title}'?", default=False).execute():
            raise typer.Abort()
        repository.delete_dictionary(dictionary_id)
    typer.echo(f"Removed {dictionary.title}")


@app.command()
def frequency(
    text: str = typer.Argument(..., help="Term (or single kanji with --kanji) to look up."),
    db: Path = DB_OPTION,
    kanji: bool = typer.Option(False, "--kanji", help="Look up kanji frequency metadata."),
    group: bool = typer.Option(False, "--group", help="Group results by dictionary."),
) -> None:
    """Show how common a word is according to each enabled dictionary."""
    with DictionaryRepository(db) as repository:
        if kanji:
            observations = lookup_kanji_frequencies(repository, text)
        else:
            observations = lookup_term_frequencies(repository, text)
        titles = dictionary_titles(repository)

    if not observations:
        typer.echo(f"No frequency data for {text}.")
        return

    if group:
        for dictionary_id, grouped in group_by_dictionary(observations).items():
            typer.echo(titles.get(dictionary_id, str(dictionary_id)))
            for observation in grouped:
                typer.echo("  " + _format_observation(observation))
        return

    for observation in observations:
        title = titles.get(observation.source_dictionary_id, str(observation.source_dictionary_id))
        typer.echo(f"{_format_observation(observation)}  [{title}]")


def _format_observation(observation: FrequencyObservation) -> str:
    rank = str(observation.rank) if observation.rank is not None else "-"
    reading = f"  {observation.reading}" if observation.reading else ""
    return f"{rank:>8}  {observation.display_text}{reading}"


if __name__ == "__main__":
    app()
