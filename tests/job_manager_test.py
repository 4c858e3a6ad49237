import json
import tempfile
import threading
import time
import unittest
from pathlib import Path
from unittest.mock import MagicMock

from crawler.jobs import JobManager, JobStateError
from crawler.models import CrawlJob, JobStatus


class TestJobManager(unittest.TestCase):
    def setUp(self):
        self.tmp = tempfile.TemporaryDirectory()
        self.output_dir = Path(self.tmp.name)
        self.runner = MagicMock(return_value={"fetched": 7})
        self.manager = JobManager(output_dir=self.output_dir, runner=self.runner,
                                  workers_per_job=3, crawl_delay=0)

    def tearDown(self):
        self.manager.shutdown()
        self.tmp.cleanup()

    def test_job_lifecycle(self):
        job = self.manager.create_job(["https://example.edu/"], max_depth=2, allowed_domains=["example.edu"])
        self.assertEqual(job.status, JobStatus.QUEUED)
        self.assertEqual(job.output_directory, self.output_dir)
        self.assertIs(self.manager.get_job(job.id), job)

        self.manager.start_job(job.id).result(timeout=5)

        self.assertEqual(job.status, JobStatus.COMPLETED)
        self.assertEqual(job.crawled_urls_count, 7)
        self.assertIsNotNone(job.started_at)
        self.assertIsNotNone(job.completed_at)
        self.assertEqual(self.manager.completed_jobs(), [job])

        args, kwargs = self.runner.call_args
        self.assertIs(args[0], job)
        self.assertEqual(kwargs["workers"], 3)
        self.assertEqual(kwargs["crawl_delay"], 0)
        self.assertEqual(kwargs["frontier"].job_id, job.id)
        self.assertEqual(kwargs["frontier"].max_depth, 2)

    def test_start_requires_queued_job(self):
        with self.assertRaises(JobStateError):
            self.manager.start_job("missing")

        job = self.manager.create_job(["https://example.edu/"], max_depth=1)
        self.manager.start_job(job.id).result(timeout=5)
        with self.assertRaises(JobStateError):
            self.manager.start_job(job.id)

    def test_failed_job(self):
        self.runner.side_effect = RuntimeError("fetch stage unavailable")
        job = self.manager.create_job(["https://example.edu/"], max_depth=1)

        self.manager.start_job(job.id).result(timeout=5)

        self.assertEqual(job.status, JobStatus.FAILED)
        self.assertEqual(job.error, "fetch stage unavailable")
        self.assertIsNotNone(job.completed_at)
        self.assertEqual(self.manager.completed_jobs(), [])

    def test_invalid_job_configuration(self):
        with self.assertRaises(ValueError):
            self.manager.create_job(["https://example.edu/"], max_depth=-1)
        with self.assertRaises(ValueError):
            self.manager.create_job([], max_depth=1)
        with self.assertRaises(ValueError):
            self.manager.create_job(["https://example.edu/"], max_depth=1, max_retries=0)
        self.assertEqual(self.manager.list_jobs(), [])

    def test_stop_running_job(self):
        started = threading.Event()

        def runner(job, frontier, workers, crawl_delay):
            started.set()
            while not frontier.stopped:
                time.sleep(0.01)
            return frontier.get_stats()

        manager = JobManager(output_dir=self.output_dir, runner=runner, crawl_delay=0)
        try:
            job = manager.create_job(["https://example.edu/"], max_depth=1)
            self.assertFalse(manager.stop_job(job.id))

            future = manager.start_job(job.id)
            self.assertTrue(started.wait(timeout=5))
            self.assertEqual(job.status, JobStatus.RUNNING)
            self.assertTrue(manager.stop_job(job.id))
            future.result(timeout=5)

            self.assertEqual(job.status, JobStatus.COMPLETED)
            self.assertFalse(manager.stop_job(job.id))
        finally:
            manager.shutdown()

    def test_update_job_stats(self):
        job = self.manager.create_job(["https://example.edu/"], max_depth=1)
        self.manager.update_job_stats(job.id, 42)
        self.assertEqual(job.crawled_urls_count, 42)
        self.manager.update_job_stats("missing", 1)

    def test_load_existing_jobs(self):
        index = {"crawled_urls": [
            {"url": "https://example.edu/", "domain": "example.edu", "depth": 0,
             "crawl_timestamp": "2026-01-06T05:32:41+00:00"},
            {"url": "https://example.edu/studium/", "domain": "example.edu", "depth": 1,
             "crawl_timestamp": "2026-01-06T05:33:00+00:00"},
            {"url": "https://other.edu/", "domain": "other.edu", "crawl_timestamp": "not a date"},
            {"domain": "broken.edu"},
        ]}
        with open(self.output_dir / "crawl_index.json", "w", encoding="utf-8") as f:
            json.dump(index, f)

        loaded = self.manager.load_existing_jobs()

        by_domain = {job.allowed_domains[0]: job for job in loaded}
        self.assertEqual(set(by_domain), {"example.edu", "other.edu"})
        example = by_domain["example.edu"]
        self.assertTrue(example.id.startswith("existing-"))
        self.assertEqual(example.status, JobStatus.COMPLETED)
        self.assertEqual(example.crawled_urls_count, 2)
        self.assertEqual(example.max_depth, 1)
        self.assertEqual(example.completed_at.year, 2026)
        self.assertEqual(len(self.manager.completed_jobs()), 2)

    def test_load_existing_jobs_without_index(self):
        self.assertEqual(self.manager.load_existing_jobs(), [])


class TestCrawlJob(unittest.TestCase):
    def test_create(self):
        job = CrawlJob.create(["https://example.edu/"], 3, "/tmp/out")
        self.assertEqual(job.status, JobStatus.QUEUED)
        self.assertEqual(job.output_directory, Path("/tmp/out"))
        self.assertEqual(job.allowed_domains, [])
        self.assertEqual(job.max_retries, 3)
        self.assertNotEqual(job.id, CrawlJob.create(["https://example.edu/"], 3, "/tmp/out").id)


if __name__ == "__main__":
    unittest.main()
