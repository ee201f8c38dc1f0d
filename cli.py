#!/usr/bin/env python3
"""
cli.py - Simple CLI for the File Agent

This is a minimal chat loop for driving the agent by hand.
It demonstrates the core flow: message → tool calls → safety gate → results.

Usage:
    python cli.py [--enable] [--dry-run] [--working-dir DIR]

Type '/agent help' for commands, 'quit' or 'exit' to stop.
"""

import argparse
import asyncio
import sys
import uuid
from pathlib import Path
from typing import List

# Fix Windows console encoding
if sys.platform == 'win32':
    sys.stdout.reconfigure(encoding='utf-8', errors='replace')
    sys.stderr.reconfigure(encoding='utf-8', errors='replace')

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent))

from boot.setup import load_config, setup_logging
from core.types import AgentConfig
from flow.agent import Agent
from flow.commands import AgentCommands

RECENT_MESSAGE_WINDOW = 10


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Sandboxed file agent CLI")
    parser.add_argument("--enable", action="store_true", help="Start with agent mode enabled")
    parser.add_argument("--dry-run", action="store_true", help="Preview tool calls without executing them")
    parser.add_argument("--working-dir", type=str, help="Directory the agent may operate in")
    return parser.parse_args(argv)


def build_config(args: argparse.Namespace) -> AgentConfig:
    config = load_config()
    changes = {}
    if args.enable:
        changes["enabled"] = True
    if args.dry_run:
        changes["dry_run_mode"] = True
    if args.working_dir:
        changes["working_directory"] = Path(args.working_dir)
    return config.with_changes(**changes) if changes else config


async def main(argv=None) -> int:
    """Main CLI entry point."""
    args = parse_args(argv)
    try:
        config = build_config(args)
    except ValueError as e:
        print(f"[ERROR] Invalid configuration: {e}")
        return 1

    setup_logging(session_id=str(uuid.uuid4()))

    commands = AgentCommands(
        agent=Agent(config) if config.enabled else None,
        config_factory=lambda: config,
    )

    print("[Agent CLI]")
    print("=" * 50)
    print(f"Working directory: {config.working_directory}")
    print(f"Agent mode: {'on' if config.enabled else 'off'}")
    print(f"Dry run: {'on' if config.dry_run_mode else 'off'}")
    print("=" * 50)
    print("\nType '/agent help' for commands, 'quit' or 'exit' to stop\n")

    recent: List[str] = []

    while True:
        try:
            line = input("You: ").strip()
        except (EOFError, KeyboardInterrupt):
            print()
            break

        if not line:
            continue
        if line.lower() in ("quit", "exit"):
            break

        if line.startswith("/agent"):
            print(commands.handle(line[len("/agent"):]))
            continue

        recent.append(line)
        recent = recent[-RECENT_MESSAGE_WINDOW:]

        output = await commands.process_message(line)
        if output:
            print(f"\n{output}\n")
        elif commands.agent is None or not commands.agent.is_enabled:
            print("[INFO] Agent mode is off. Use '/agent on' to enable tools.")
        else:
            print("[INFO] No tool request detected.")

        completion = commands.check_task_completion(recent)
        if completion:
            status, confidence, patterns = completion
            print(f"[DONE] {status.description} (confidence {confidence:.2f})")
            for pattern in patterns:
                print(f"   - {pattern}")

    print("Goodbye!")
    return 0


def run() -> int:
    """Console script entry point."""
    return asyncio.run(main())


if __name__ == "__main__":
    sys.exit(run())
