import sys
import os
import argparse

# Inject the studychat-crawler directory into sys.path
# This ensures the sub-packages (crawler, frontier) are resolvable when run from a checkout.
sys.path.append(os.path.join(os.path.dirname(__file__), "studychat-crawler"))

from crawler.core import (
    ALLOWED_DOMAINS,
    CRAWL_DELAY,
    MAX_DEPTH,
    MAX_RETRIES,
    MIN_WORKERS,
    OUTPUT_DIR,
    SEED_URLS,
    setup_logger,
)
from crawler.jobs import JobManager
from crawler.models import JobStatus


def build_parser():
    parser = argparse.ArgumentParser(description="StudyChat Crawler CLI")
    parser.add_argument("--seed", action="append", dest="seeds",
                        help="Seed URL (repeatable). Defaults to SEED_URLS from the environment.")
    parser.add_argument("--max-depth", type=int, default=MAX_DEPTH, help="Maximum crawl depth")
    parser.add_argument("--allowed-domain", action="append", dest="allowed_domains",
                        help="Allowed domain (repeatable). Defaults to ALLOWED_DOMAINS, then the seeds' domains.")
    parser.add_argument("--workers", type=int, default=MIN_WORKERS, help="Fetch workers for the job")
    parser.add_argument("--max-retries", type=int, default=MAX_RETRIES, help="Fetch attempts per URL")
    parser.add_argument("--output", default=str(OUTPUT_DIR), help="Output directory")
    parser.add_argument("--delay", type=float, default=CRAWL_DELAY, help="Seconds between requests per worker")
    parser.add_argument("--log-file", default=None, help="Also write logs to this file")
    parser.add_argument("--list-existing", action="store_true",
                        help="List jobs found in an existing crawl index and exit")
    return parser


def main(argv=None):
    args = build_parser().parse_args(argv)
    logger = setup_logger("crawler", log_file=args.log_file)

    manager = JobManager(output_dir=args.output, workers_per_job=args.workers,
                         crawl_delay=args.delay)
    try:
        if args.list_existing:
            for job in manager.load_existing_jobs():
                print(f"{job.id}  {job.allowed_domains[0]:<40} {job.crawled_urls_count} URLs")
            return 0

        try:
            job = manager.create_job(
                seed_urls=args.seeds or SEED_URLS,
                max_depth=args.max_depth,
                allowed_domains=args.allowed_domains or (None if args.seeds else ALLOWED_DOMAINS),
                max_retries=args.max_retries,
            )
        except ValueError as e:
            print(f"CONFIG_ERROR: {e}")
            return 2

        future = manager.start_job(job.id)
        try:
            future.result()
        except KeyboardInterrupt:
            logger.warning(f"Interrupted, stopping job {job.id}")
            manager.stop_job(job.id)
            future.result()

        print(f"Job {job.id} finished with status {job.status.value}: "
              f"{job.crawled_urls_count} URLs crawled -> {job.output_directory}")
        return 0 if job.status == JobStatus.COMPLETED else 1
    finally:
        manager.shutdown()


if __name__ == "__main__":
    sys.exit(main())
