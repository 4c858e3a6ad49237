"""
Admission rules of the URL policy: exclusions first, then the inclusion table.
"""

import unittest

from crawler.policy import PolicyConfig, URLPolicy, domains_from_seeds, registrable_domain


class TestURLPolicy(unittest.TestCase):
    def setUp(self):
        self.policy = URLPolicy(PolicyConfig(allowed_domains=frozenset({"example.edu"})))

    def assertReason(self, url, allowed, reason):
        self.assertEqual(self.policy.eval(url), (allowed, reason), url)

    def test_priority_path_is_admitted(self):
        self.assertTrue(self.policy.admit("https://example.edu/studium/ba-informatik"))
        self.assertReason("https://example.edu/studium/ba-informatik", True, "allowed_priority")

    def test_excluded_extension_is_rejected(self):
        self.assertReason("https://example.edu/docs/flyer.pdf", False, "blocked_extension")
        self.assertReason("https://example.edu/logo.PNG", False, "blocked_extension")

    def test_exclusion_wins_over_priority_path(self):
        self.assertReason("https://example.edu/studium/flyer.pdf", False, "blocked_extension")
        self.assertReason("https://example.edu/studium/api/courses", False, "blocked_path")
        self.assertReason("https://example.edu/api/studium/", False, "blocked_path")

    def test_too_many_query_params(self):
        self.assertReason("https://example.edu/page?a=1&b=2&c=3&d=4&e=5&f=6", False, "blocked_query_params")

    def test_excluded_query_params(self):
        self.assertReason("https://example.edu/news/x?print=1", False, "blocked_query")
        self.assertReason("https://example.edu/news/x?utm_source=mail", False, "blocked_query")
        self.assertReason("https://example.edu/news/x?id=3&utm_medium=web", False, "blocked_query")

    def test_fragment_is_rejected(self):
        self.assertReason("https://example.edu/studium/#inhalt", False, "blocked_fragment")

    def test_excluded_path_segments(self):
        for path in ("/admin/users", "/wp-admin/", "/login", "/static/app", "/images/a"):
            self.assertReason("https://example.edu" + path, False, "blocked_path")

    def test_host_allow_list(self):
        self.assertReason("https://www.example.edu/", True, "allowed_priority")
        self.assertReason("https://EXAMPLE.edu/de", True, "allowed_priority")
        self.assertReason("https://badexample.edu/", False, "blocked_host")
        self.assertReason("https://other.org/studium/", False, "blocked_host")

    def test_non_http_and_malformed(self):
        self.assertReason("ftp://example.edu/file", False, "blocked_non_http")
        self.assertReason("mailto:info@example.edu", False, "blocked_non_http")
        self.assertReason("not a url", False, "malformed")
        self.assertReason("", False, "malformed")
        self.assertReason("https://", False, "malformed")
        self.assertReason("https://example.edu:notaport/", False, "malformed")

    def test_path_depth_heuristic(self):
        self.assertReason("https://example.edu/studium/a/b/c/d/e/f/g/h", False, "blocked_path_depth")
        self.assertReason("https://example.edu/studium/a/b/c/d/e/f/g", True, "allowed_priority")

    def test_generic_fallback(self):
        self.assertReason("https://example.edu/a/b/c/d", True, "allowed_generic")
        self.assertReason("https://example.edu/a/b/c/d/e", False, "blocked_uncategorized")
        self.assertReason("https://example.edu/suche?q=test", False, "blocked_uncategorized")
        self.assertReason("https://example.edu/studium/liste?page=2", True, "allowed_priority")

    def test_eval_is_deterministic(self):
        urls = [
            "https://example.edu/studium/",
            "https://example.edu/docs/flyer.pdf",
            "https://example.edu/a/b/c/d/e",
        ]
        first = [self.policy.eval(u) for u in urls]
        for _ in range(3):
            self.assertEqual([self.policy.eval(u) for u in urls], first)

    def test_config_normalizes_domains(self):
        config = PolicyConfig(allowed_domains=frozenset({" .Example.EDU ", ""}))
        self.assertEqual(config.allowed_domains, frozenset({"example.edu"}))

    def test_registrable_domains_from_seeds(self):
        self.assertEqual(registrable_domain("https://www.hs-heilbronn.de/de"), "hs-heilbronn.de")
        self.assertEqual(
            domains_from_seeds(["https://www.example.edu/x", "https://news.example.edu/"]),
            frozenset({"example.edu"}),
        )


if __name__ == "__main__":
    unittest.main()
