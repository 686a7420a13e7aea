"""
Check the Bitrix24 connection and optionally dump the full task list.

Usage:
    BITRIX_WEBHOOK_URL=https://portal.bitrix24.kz/rest/13/key/ \
        python scripts/check_connection.py --user 13 [--all]
"""
import argparse
import asyncio
import logging
import os
import sys

# Ensure project root in path
sys.path.append(os.getcwd())

from taskbridge import BitrixConfig, BitrixError, LaunchOverrides, TaskService


async def run(args: argparse.Namespace) -> int:
    config = BitrixConfig.from_env()
    overrides = LaunchOverrides.parse(args.launch or '')
    config = config.with_overrides(overrides)
    user_id = args.user or config.resolve_user_id(args.telegram, overrides)

    service = TaskService(config)

    try:
        if args.all:
            tasks = await service.fetch_tasks(user_id, force=True)
            print(f"[*] {len(tasks)} tasks (total={service.state.total})")
            for task in tasks:
                print(f"  #{task.get('ID')}  [{task.get('STATUS')}]  {task.get('TITLE')}")
        else:
            report = await service.test_connection(user_id)
            if report.has_tasks:
                print(f"[*] Connected: {report.total} tasks")
                for line in report.preview:
                    print(f"  {line}")
            else:
                print("[*] Connected, but no tasks were found for this user.")
    except BitrixError as e:
        print(f"[!] {type(e).__name__}: {e}")
        return 1

    print(f"[*] Transport in use: {service.transport_state.active.value}")
    return 0


def main() -> int:
    parser = argparse.ArgumentParser(description="Bitrix24 connection check")
    parser.add_argument("--user", help="Bitrix24 user id")
    parser.add_argument("--telegram", help="Telegram id, resolved through BITRIX_USER_MAPPING")
    parser.add_argument("--launch", help="launch query string, e.g. '?bx=13&demo=0'")
    parser.add_argument("--all", action="store_true", help="fetch every task instead of one page")
    parser.add_argument("-v", "--verbose", action="store_true")
    args = parser.parse_args()

    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.WARNING)
    return asyncio.run(run(args))


if __name__ == "__main__":
    sys.exit(main())
