import unittest
from gobuildpack.signature import CacheState, classify, compute


class TestSignature(unittest.TestCase):

    def test_compute_is_deterministic(self):
        self.assertEqual(compute("go1.22.5", "dep@v0.5.4", "heroku-22"),
                         compute("go1.22.5", "dep@v0.5.4", "heroku-22"))

    def test_compute_changes_with_each_component(self):
        base = compute("go1.22.5", "modules@builtin", "heroku-22")
        self.assertNotEqual(base, compute("go1.22.6", "modules@builtin", "heroku-22"))
        self.assertNotEqual(base, compute("go1.22.5", "dep@v0.5.4", "heroku-22"))
        self.assertNotEqual(base, compute("go1.22.5", "modules@builtin", "heroku-24"))

    def test_components_cannot_run_together(self):
        self.assertNotEqual(compute("1", "23", "x"), compute("12", "3", "x"))
        self.assertNotEqual(compute("a;b", "c", ""), compute("a", "b;c", ""))

    def test_classify(self):
        self.assertEqual(classify("s1", "s1", disabled=True), CacheState.DISABLED)
        self.assertEqual(classify("s1", None, disabled=True), CacheState.DISABLED)
        self.assertEqual(classify("s1", None, disabled=False), CacheState.EMPTY)
        self.assertEqual(classify("s1", "s1", disabled=False), CacheState.VALID)
        self.assertEqual(classify("s1", "s0", disabled=False), CacheState.NEW_SIGNATURE)


if __name__ == "__main__":
    unittest.main()
