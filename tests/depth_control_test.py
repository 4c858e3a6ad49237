import unittest

from crawler.policy import PolicyConfig, URLPolicy
from frontier.depth import DepthController, DepthLimitExceeded, next_depth
from frontier.metadata import (
    CURRENT_DEPTH_KEY,
    DEPTH_KEY,
    MAX_DEPTH_KEY,
    NEXT_DEPTH_KEY,
    PARENT_URL_KEY,
    copy_metadata_with_values,
    get_depth,
    get_max_depth,
)
from frontier.orchestrator import Frontier

CANDIDATE = "https://example.edu/studium/ba-informatik"
PARENT = "https://example.edu/studium/"


class TestDepthControl(unittest.TestCase):
    def make_frontier(self, max_depth):
        policy = URLPolicy(PolicyConfig(allowed_domains=frozenset({"example.edu"})))
        return Frontier("job-depth", policy, max_depth)

    def test_candidate_within_limit_is_admitted(self):
        frontier = self.make_frontier(max_depth=3)
        self.assertEqual(frontier.enqueue(CANDIDATE, PARENT, current_depth=2), "enqueued")

        url, metadata = frontier.next_task(timeout=0.1)
        self.assertEqual(url, CANDIDATE)
        self.assertEqual(metadata[NEXT_DEPTH_KEY], "3")
        self.assertEqual(metadata[DEPTH_KEY], "3")
        self.assertEqual(metadata[CURRENT_DEPTH_KEY], "2")
        self.assertEqual(metadata[MAX_DEPTH_KEY], "3")
        self.assertEqual(metadata[PARENT_URL_KEY], PARENT)

    def test_candidate_beyond_limit_is_rejected(self):
        frontier = self.make_frontier(max_depth=2)
        self.assertEqual(frontier.enqueue(CANDIDATE, PARENT, current_depth=2), "depth_exceeded")
        self.assertIsNone(frontier.get(CANDIDATE))
        self.assertEqual(frontier.get_stats()["depth_exceeded"], 1)
        self.assertTrue(frontier.is_exhausted())

    def test_rejected_by_depth_is_not_marked_seen(self):
        frontier = self.make_frontier(max_depth=2)
        frontier.enqueue(CANDIDATE, PARENT, current_depth=2)
        self.assertEqual(frontier.enqueue(CANDIDATE, PARENT, current_depth=1), "enqueued")

    def test_next_depth(self):
        self.assertEqual(next_depth(0, 1), 1)
        self.assertEqual(next_depth(2, 3), 3)
        with self.assertRaises(DepthLimitExceeded) as cm:
            next_depth(2, 2)
        self.assertEqual(cm.exception.next_depth, 3)
        self.assertEqual(cm.exception.max_depth, 2)
        self.assertIsInstance(cm.exception, ValueError)
        with self.assertRaises(ValueError):
            next_depth(-1, 3)

    def test_max_depth_zero_admits_nothing_beyond_seeds(self):
        controller = DepthController(0)
        with self.assertRaises(DepthLimitExceeded):
            controller.annotate(controller.candidate(CANDIDATE, PARENT, 0))

    def test_negative_max_depth_is_invalid(self):
        with self.assertRaises(ValueError):
            DepthController(-1)

    def test_annotate_keeps_base_metadata(self):
        controller = DepthController(5)
        base = {"custom": "x"}
        metadata = controller.annotate(controller.candidate(CANDIDATE, PARENT, 1), base)
        self.assertEqual(metadata["custom"], "x")
        self.assertEqual(metadata[DEPTH_KEY], "2")
        self.assertEqual(base, {"custom": "x"})


class TestMetadataHelpers(unittest.TestCase):
    def test_get_depth(self):
        self.assertEqual(get_depth(None), 0)
        self.assertEqual(get_depth({}), 0)
        self.assertEqual(get_depth({DEPTH_KEY: "4"}), 4)
        self.assertEqual(get_depth({CURRENT_DEPTH_KEY: "2"}), 2)
        self.assertEqual(get_depth({DEPTH_KEY: "abc"}), 0)
        self.assertEqual(get_depth({DEPTH_KEY: "-3"}), 0)

    def test_get_max_depth(self):
        self.assertEqual(get_max_depth({MAX_DEPTH_KEY: "7"}, 5), 7)
        self.assertEqual(get_max_depth({}, 5), 5)

    def test_copy_with_values(self):
        source = {DEPTH_KEY: "1"}
        copy = copy_metadata_with_values(source, depth=2, parent_url=None)
        self.assertEqual(copy, {DEPTH_KEY: "2"})
        self.assertEqual(source, {DEPTH_KEY: "1"})


if __name__ == "__main__":
    unittest.main()
