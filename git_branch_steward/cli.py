"""Command-line interface for git-branch-steward"""

import asyncio
import os
import sys
from pathlib import Path

from rich.console import Console
from rich.markup import escape

from .args import parse_args
from .config import Config
from .core import ReconciliationEngine
from .exceptions import GitBranchStewardError, RecoveryEntryNotFoundError
from .logging_config import setup_logging
from .models import RuleAction, RuleConditions
from .presenters import AutoApprovePresenter
from .services.display_service import ConsolePresenter, DisplayService
from .services.watcher import RepositoryWatcher

console = Console()

# CLI flags that map one-to-one onto Config fields
CONFIG_FLAGS = (
    "stale_days",
    "protected_branches",
    "exclusion_patterns",
    "team_safe_mode",
    "gone_branch_action",
    "base_branch",
    "poll_interval",
    "assume_yes",
    "verbose",
    "debug",
)


def build_config(parsed_args) -> Config:
    """Merge the config file (if any) with command-line overrides."""
    values = dict(vars(parsed_args))
    values["protected_branches"] = values.pop("protected", None)
    overrides = {key: values.get(key) for key in CONFIG_FLAGS if values.get(key) is not None}
    if not overrides.get("verbose"):
        overrides.pop("verbose", None)
    if not overrides.get("debug"):
        overrides.pop("debug", None)

    if parsed_args.config:
        return Config.from_json_file(parsed_args.config, **overrides)
    return Config.from_dict(overrides)


def _repo_paths(parsed_args):
    paths = parsed_args.repos or [os.getcwd()]
    return [str(Path(p).expanduser().resolve()) for p in paths]


async def _status(engine, display, repo_path, parsed_args):
    display.display_branch_table(await engine.snapshots(repo_path))
    return 0


async def _gone(engine, display, repo_path, parsed_args):
    detector = engine.gone_detector
    newly_gone = await detector.detect(repo_path)
    if not newly_gone:
        console.print("[green]No branches with a deleted remote[/green]")
        return 0
    outcome = await detector.handle(repo_path, newly_gone)
    return 1 if outcome is not None and outcome.failed else 0


async def _cleanup(engine, display, repo_path, parsed_args):
    evaluator = engine.cleanup_evaluator
    proposal = await evaluator.propose(repo_path)
    for rule, reason in proposal.skipped_rules:
        console.print(f"[yellow]Skipped rule '{rule.name}': {reason}[/yellow]")

    if parsed_args.dry_run:
        if not proposal.candidates:
            console.print("[green]No branches match the enabled cleanup rules[/green]")
        else:
            console.print("Branches that would be deleted:")
            display.display_branch_table(proposal.candidates)
        return 0

    if proposal.is_empty():
        console.print("[green]No branches match the enabled cleanup rules[/green]")
        return 0
    outcome = await evaluator.handle(repo_path, proposal)
    return 1 if outcome is not None and outcome.failed else 0


async def _reconcile(engine, display, repo_path, parsed_args):
    result = await engine.reconcile(repo_path)
    display.display_branch_table(result.snapshots)
    if result.deleted:
        console.print(f"[green]Deleted {len(result.deleted)}: {', '.join(result.deleted)}[/green]")
    failed = [o for o in (result.gone_outcome, result.cleanup_outcome) if o and o.failed]
    return 1 if failed else 0


async def _rules(engine, display, repo_path, parsed_args):
    rules = engine.repository(repo_path).rules
    command = parsed_args.rules_command

    if command == "list":
        display.display_rules(rules.list())
    elif command == "add":
        conditions = RuleConditions(
            merged=parsed_args.merged,
            older_than_days=parsed_args.older_than,
            pattern=parsed_args.pattern,
            no_remote=parsed_args.no_remote,
        )
        rule = rules.add(parsed_args.name, conditions, RuleAction(parsed_args.action),
                         enabled=not parsed_args.disabled)
        if conditions.is_empty():
            console.print("[yellow]Warning: this rule has no conditions and matches "
                          "every branch except the current one[/yellow]")
        console.print(f"[green]Added rule {rule.id}: {rule.conditions.describe()}[/green]")
    elif command in ("enable", "disable"):
        rule = rules.set_enabled(parsed_args.rule_id, command == "enable")
        console.print(f"Rule {rule.id} {'enabled' if rule.enabled else 'disabled'}")
    elif command == "toggle":
        rule = rules.toggle(parsed_args.rule_id)
        console.print(f"Rule {rule.id} {'enabled' if rule.enabled else 'disabled'}")
    elif command == "remove":
        rules.remove(parsed_args.rule_id)
        console.print(f"Removed rule {parsed_args.rule_id}")
    return 0


async def _recovery(engine, display, repo_path, parsed_args):
    log = engine.repository(repo_path).recovery_log
    command = parsed_args.recovery_command

    if command == "list":
        display.display_recovery_log(log.list())
    elif command == "clear":
        log.clear()
        console.print("Recovery log cleared")
    elif command == "undo":
        entry = await log.undo_last()
        console.print(f"[green]Restored {entry.branch_name} at {entry.commit_hash[:12]}[/green]")
    else:
        entry = log.find(parsed_args.branch, parsed_args.commit)
        if entry is None:
            raise RecoveryEntryNotFoundError(parsed_args.branch, parsed_args.commit)
        if command == "restore":
            await log.restore(entry.branch_name, entry.commit_hash)
            console.print(f"[green]Restored {entry.branch_name} at {entry.commit_hash[:12]}[/green]")
        else:
            log.dismiss(entry.branch_name, entry.commit_hash)
            console.print(f"Dismissed {entry.branch_name} at {entry.commit_hash[:12]}")
    return 0


async def _watch(engine, repo_paths, config):
    await engine.initialize(repo_paths)
    watcher = RepositoryWatcher(engine, repo_paths, config.poll_interval)
    console.print(f"[blue]Watching {len(repo_paths)} repositories (Ctrl+C to stop)[/blue]")
    try:
        await watcher.run()
    finally:
        watcher.stop()
        engine.close()
        await engine.drain()
    return 0


COMMANDS = {
    "status": _status,
    "gone": _gone,
    "cleanup": _cleanup,
    "reconcile": _reconcile,
    "rules": _rules,
    "recovery": _recovery,
}


async def run(parsed_args, config: Config) -> int:
    presenter = AutoApprovePresenter(echo=console.print) if config.assume_yes else ConsolePresenter(console)
    engine = ReconciliationEngine(config, presenter)
    repo_paths = _repo_paths(parsed_args)

    if parsed_args.command == "watch":
        return await _watch(engine, repo_paths, config)

    display = DisplayService(console)
    try:
        return await COMMANDS[parsed_args.command](engine, display, repo_paths[0], parsed_args)
    finally:
        engine.close()


def main(argv=None):
    """Main entry point for the application."""
    parsed_args = None
    try:
        parsed_args = parse_args(argv)
        setup_logging(verbose=parsed_args.verbose, debug=parsed_args.debug,
                      log_file=getattr(parsed_args, "log_file", None))
        config = build_config(parsed_args)

        if config.debug:
            console.print("[yellow]Configuration:[/yellow]")
            for key, value in config.to_dict().items():
                if key == "github_token" and value:
                    value = "***"
                console.print(f"  {key}: {value}")

        return asyncio.run(run(parsed_args, config))
    except KeyboardInterrupt:
        console.print("\n[yellow]Operation cancelled by user[/yellow]")
        return 1
    except GitBranchStewardError as e:
        console.print(f"[red]Error: {escape(str(e))}[/red]")
        if parsed_args is not None and parsed_args.debug:
            console.print_exception()
        return 1


if __name__ == "__main__":
    sys.exit(main())
