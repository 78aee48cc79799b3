# main.py
import argparse
import asyncio
import sys
from contextlib import asynccontextmanager
from redis.exceptions import RedisError
from config.cache import close_redis, warm_redis
from config.settings import settings
from core.entities import UploadSource
from repository.identity_repository import IdentityRepository
from service.session_service import FormFillSession
from util.constants import DEFAULT_PROFILE
from util.enums import Color
from util.functions import format_bytes, is_valid_http_url
from util.logger import init_logger


@asynccontextmanager
async def lifespan():
    logger = init_logger()
    print(f"{Color.GREEN}Initializing...{Color.RESET}")
    try:
        await warm_redis()
    except (RedisError, OSError) as e:
        # Cache and identity degrade to per-process values without the store
        logger.warning("cache.unreachable url=%s err=%s", settings.REDIS_URL, type(e).__name__)

    try:
        yield
    finally:
        try:
            await close_redis()
        except (RedisError, OSError) as e:
            print("Error closing Redis:", e)
        print(f"{Color.RED}Client Shutdown{Color.RESET}")


def _print_files(session: FormFillSession) -> None:
    if session.manifest_error:
        print(f"{Color.YELLOW}{session.manifest_error}{Color.RESET}")
    if not session.files:
        print("No uploads yet. Add files to kick things off.")
        return
    for f in session.files:
        where = f.remoteUrl or ("Stored" if f.slug else "Preparing upload")
        line = f" - {f.name} [{f.status}] {format_bytes(f.size)} {where}"
        if f.error:
            line += f" {Color.RED}{f.error}{Color.RESET}"
        print(line)


async def run(args: argparse.Namespace) -> int:
    try:
        return await _run(args)
    except asyncio.TimeoutError:
        print(f"{Color.RED}Gave up after {args.timeout:.0f}s{Color.RESET}")
        return 2


async def _run(args: argparse.Namespace) -> int:
    async with lifespan():
        identity = await IdentityRepository().ensure(args.profile)
        print(f"{Color.BLUE}Session {identity}{Color.RESET}")

        async with FormFillSession(identity) as session:
            session.target_link = args.form_url or ""
            if args.refresh:
                await session.refresh()
            else:
                await session.hydrate()

            if args.files:
                sources = [UploadSource.from_path(p) for p in args.files]
                await session.add_files(sources)
                await asyncio.wait_for(session.settle_uploads(), timeout=args.timeout)
            _print_files(session)

            if not args.form_url:
                return 0
            if not await session.start_fill():
                print(f"{Color.RED}Cannot start: every file must be uploaded.{Color.RESET}")
                return 1
            job = await asyncio.wait_for(session.settle_job(), timeout=args.timeout)
            if job.status == "complete":
                print(f"{Color.GREEN}Filled form ready: {job.resultUrl}{Color.RESET}")
                return 0
            print(f"{Color.RED}Job failed: {job.errorMessage}{Color.RESET}")
            return 1


def _parse_args(argv: list[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Upload supporting documents and run the form filling pipeline."
    )
    parser.add_argument("files", nargs="*", help="documents to upload")
    parser.add_argument("--form-url", help="public http(s) link to the blank PDF form")
    parser.add_argument("--profile", default=DEFAULT_PROFILE, help="local identity profile")
    parser.add_argument(
        "--refresh", action="store_true", help="skip the cache and reload from the backend"
    )
    parser.add_argument(
        "--timeout", type=float, default=600.0, help="seconds to wait for uploads and the job"
    )
    args = parser.parse_args(argv)
    if args.form_url and not is_valid_http_url(args.form_url):
        parser.error("--form-url must be an http(s) link")
    return args


if __name__ == "__main__":
    sys.exit(asyncio.run(run(_parse_args(sys.argv[1:]))))
