#!/usr/bin/env python3
"""
VOX Output Monitor - Entry Point

Watches a terminal or editor after a command and prints the new output
once it settles.
"""

import argparse
import asyncio
import dataclasses
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent))


def print_banner():
    """Print startup banner"""
    banner = """
    ╔════════════════════════════════════════════════════╗
    ║                                                    ║
    ║          VOX Output Monitor v1.0                   ║
    ║                                                    ║
    ╚════════════════════════════════════════════════════╝
    """
    print(banner)


def parse_args(argv=None):
    parser = argparse.ArgumentParser(
        description="Capture new output from terminals and editors",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Modes:
  --target NAME         Snapshot NAME now, then report its next output
  --watch               Keep watching the frontmost app (or --target)
  (neither)             Watch if app_watcher.yaml sets enabled: true

Examples:
  # Run a command in Terminal, then read its output back
  python main.py --target terminal --command "git status"

  # Watch whichever monitored app is in front
  python main.py --watch
        """
    )

    parser.add_argument(
        "--target",
        default=None,
        help="Target name or voice prefix (terminal, iterm, cursor, ...)"
    )

    parser.add_argument(
        "--command",
        default="",
        help="Command text to record with the captured output"
    )

    parser.add_argument(
        "--watch",
        action="store_true",
        help="Continuously report new output"
    )

    parser.add_argument(
        "--timeout",
        type=float,
        default=None,
        help="Seconds to wait for output (overrides monitor.yaml)"
    )

    parser.add_argument(
        "--no-prompt-detection",
        action="store_true",
        help="Do not finish early when a shell prompt returns"
    )

    parser.add_argument(
        "--config",
        default="config",
        help="Configuration directory"
    )

    return parser.parse_args(argv)


def build_orchestrator(args, frontmost=None):
    """Create the orchestrator from config files and command-line overrides"""
    from core.orchestrator import MonitorOrchestrator

    orchestrator = MonitorOrchestrator.from_config(args.config, frontmost=frontmost)

    overrides = {}
    if args.timeout is not None:
        if args.timeout <= 0:
            raise ValueError(f"--timeout must be positive, got {args.timeout}")
        overrides['timeout'] = args.timeout
    if args.no_prompt_detection:
        overrides['use_prompt_detection'] = False
    if overrides:
        orchestrator.config = dataclasses.replace(orchestrator.config, **overrides)

    return orchestrator


def load_enabled_targets(config_root):
    """Targets listed under monitor.enabled_targets in settings.yaml"""
    from core.targets import enabled_targets
    from utils.config import get_config_manager

    settings = get_config_manager(config_root)
    settings.load_global_config()
    return enabled_targets(settings.get('monitor.enabled_targets'))


def watch_by_default(config_root):
    """Whether app_watcher.yaml turns on watching when no mode is given"""
    from core.app_watcher import AppWatcherConfig
    from utils.config import get_config_manager

    try:
        data = get_config_manager(config_root).load_module_config('app_watcher')
    except FileNotFoundError:
        return False
    return AppWatcherConfig.from_dict(data).enabled


async def run_once(args, target):
    """Monitor a single command's output"""
    orchestrator = build_orchestrator(args)

    try:
        if not orchestrator.reader.can_read(target):
            print(f"❌ {target.name} cannot be read on this system")
            return 1

        print(f"Monitoring {target.name} (timeout {orchestrator.config.timeout:g}s)...")
        await orchestrator.monitor_target(target, args.command)
    finally:
        await orchestrator.shutdown()
    return 0


async def run_watch(args, target=None, enabled=None):
    """Report new output until interrupted"""
    from modules.readers.platform import create_frontmost_provider

    if target is not None:
        frontmost = lambda: target
    else:
        provider = create_frontmost_provider()
        if provider is None:
            print("❌ Frontmost application lookup unavailable, use --target")
            return 1

        def frontmost():
            found = provider()
            if enabled is not None and found not in enabled:
                return None
            return found

    orchestrator = build_orchestrator(args, frontmost=frontmost)
    print("Watching for new output (Ctrl+C to stop)...\n")

    try:
        # Polls until the user interrupts
        await orchestrator.app_watcher.run()
    except asyncio.CancelledError:
        pass
    finally:
        await orchestrator.shutdown()
    return 0


async def main(argv=None):
    """Main entry point"""
    from core.targets import target_by_name
    from utils.logger import get_logger

    logger = get_logger('main')
    args = parse_args(argv)

    try:
        enabled = load_enabled_targets(args.config)

        target = None
        if args.target:
            target = target_by_name(args.target)
            if target is None:
                names = ", ".join(t.name for t in enabled)
                print(f"❌ Unknown target: {args.target} (enabled: {names})")
                return 2
            if target not in enabled:
                print(f"❌ {target.name} is not in monitor.enabled_targets")
                return 2

        watch = args.watch or (target is None and watch_by_default(args.config))
        if not watch and target is None:
            print("❌ Nothing to do: pass --target NAME or --watch")
            return 2

        print_banner()
        if watch:
            return await run_watch(args, target, enabled)
        return await run_once(args, target)

    except KeyboardInterrupt:
        print("\n\n👋 Goodbye!")
        return 0

    except ValueError as e:
        print(f"❌ Invalid configuration: {e}")
        return 2

    except Exception as e:
        logger.critical(f"Error: {e}", exc_info=True)
        print(f"\n💥 Critical error: {e}")
        return 1


def cli():
    # Force unbuffered output
    sys.stdout.reconfigure(line_buffering=True)

    try:
        exit_code = asyncio.run(main())
        sys.exit(exit_code)
    except KeyboardInterrupt:
        print("\n\n👋 Goodbye!")
        sys.exit(0)


if __name__ == "__main__":
    cli()
