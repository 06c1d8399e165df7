"""
Printer agent CLI.

Usage:
    python -m app.agent login <email> [--password <password>]
    python -m app.agent run [--auto-print]
    python -m app.agent sync
    python -m app.agent list [--all]
    python -m app.agent print <job_id>
    python -m app.agent remove <job_id>
    python -m app.agent remove-all
    python -m app.agent history [--limit N]
    python -m app.agent cleanup [--max-age-hours H]
    python -m app.agent logout
"""

import argparse
import asyncio
import getpass
import logging
import sys

import httpx

from app.agent.config import get_agent_settings
from app.agent.runtime import NotLoggedIn, PrinterAgent


def _print_jobs(jobs) -> None:
    if not jobs:
        print("No jobs.")
        return
    for job in jobs:
        settings = job.get("settings") or {}
        print(
            f"{job.get('job_number', '?'):<10} {job.get('status', '?'):<10} "
            f"{settings.get('copies', 1)}x {settings.get('color_mode', 'bw'):<5} "
            f"{job.get('file_name', '')}  [{job['id']}]"
        )


async def cmd_login(agent: PrinterAgent, args: argparse.Namespace) -> int:
    password = args.password or getpass.getpass("Password: ")
    data = await agent.login(args.email, password)
    print(f"Logged in to {data['shop']['shop_name']} ({data['shop']['shop_id']})")
    return 0


async def cmd_run(agent: PrinterAgent, args: argparse.Namespace) -> int:
    await agent.run(auto_print=args.auto_print)
    return 0


async def cmd_sync(agent: PrinterAgent, args: argparse.Namespace) -> int:
    result = await agent.sync()
    if not result.success:
        print(f"Offline: {result.error}")
    print(f"{result.added} new job(s), {len(result.jobs)} pending")
    _print_jobs(result.jobs)
    return 0 if result.success else 1


async def cmd_list(agent: PrinterAgent, args: argparse.Namespace) -> int:
    _print_jobs(agent.queue.get_all_jobs() if args.all else agent.queue.get_pending_jobs())
    return 0


async def cmd_print(agent: PrinterAgent, args: argparse.Namespace) -> int:
    result = await agent.print_job(args.job_id)
    print("Printed." if result.success else f"Print failed: {result.error}")
    return 0 if result.success else 1


async def cmd_remove(agent: PrinterAgent, args: argparse.Namespace) -> int:
    removed = await agent.remove_job(args.job_id)
    print("Removed." if removed else "Job was not in the local queue.")
    return 0


async def cmd_remove_all(agent: PrinterAgent, args: argparse.Namespace) -> int:
    await agent.remove_all_jobs()
    print("All jobs removed.")
    return 0


async def cmd_history(agent: PrinterAgent, args: argparse.Namespace) -> int:
    _print_jobs(await agent.history(args.limit))
    return 0


async def cmd_cleanup(agent: PrinterAgent, args: argparse.Namespace) -> int:
    print(f"Removed {agent.cleanup(args.max_age_hours)} old job(s).")
    return 0


async def cmd_logout(agent: PrinterAgent, args: argparse.Namespace) -> int:
    await agent.logout()
    print("Logged out.")
    return 0


COMMANDS = {
    "login": cmd_login,
    "run": cmd_run,
    "sync": cmd_sync,
    "list": cmd_list,
    "print": cmd_print,
    "remove": cmd_remove,
    "remove-all": cmd_remove_all,
    "history": cmd_history,
    "cleanup": cmd_cleanup,
    "logout": cmd_logout,
}


async def _dispatch(args: argparse.Namespace) -> int:
    agent = PrinterAgent(get_agent_settings())
    try:
        return await COMMANDS[args.command](agent, args)
    except NotLoggedIn as e:
        print(str(e))
        return 1
    except httpx.HTTPError as e:
        print(f"Server request failed: {e}")
        return 1
    finally:
        if args.command != "run":
            await agent.close()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="python -m app.agent",
        description="Printly printer agent",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    login_parser = subparsers.add_parser("login", help="Log in as the shop owner")
    login_parser.add_argument("email")
    login_parser.add_argument("--password", "-p", help="Prompted for when omitted")

    run_parser = subparsers.add_parser("run", help="Stay connected and sync periodically")
    run_parser.add_argument(
        "--auto-print",
        action="store_true",
        help="Print incoming jobs one at a time as they arrive",
    )

    subparsers.add_parser("sync", help="Pull pending jobs from the server")

    list_parser = subparsers.add_parser("list", help="Show local jobs")
    list_parser.add_argument("--all", action="store_true", help="Include finished jobs")

    print_parser = subparsers.add_parser("print", help="Print one local job")
    print_parser.add_argument("job_id")

    remove_parser = subparsers.add_parser("remove", help="Remove one job")
    remove_parser.add_argument("job_id")

    subparsers.add_parser("remove-all", help="Remove every active job of the shop")

    history_parser = subparsers.add_parser("history", help="Finished jobs from the server")
    history_parser.add_argument("--limit", "-l", type=int, default=200)

    cleanup_parser = subparsers.add_parser("cleanup", help="Drop old finished local jobs")
    cleanup_parser.add_argument("--max-age-hours", type=float, default=None)

    subparsers.add_parser("logout", help="Disconnect and clear local state")
    return parser


def main() -> None:
    """Main entry point."""
    args = build_parser().parse_args()
    settings = get_agent_settings()
    logging.basicConfig(
        level=settings.LOG_LEVEL,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        exit_code = asyncio.run(_dispatch(args))
    except KeyboardInterrupt:
        exit_code = 0
    sys.exit(exit_code)


if __name__ == "__main__":
    main()
