from unittest import TestCase

from hypothesis import given
from hypothesis import strategies as st

from artifact_resolver.errors import MalformedRangeError
from artifact_resolver.versions import Version, VersionRange, compare_versions, parse_version_range

numeric_versions = st.lists(st.integers(min_value=0, max_value=30), min_size=1, max_size=4).map(
    lambda parts: ".".join(map(str, parts))
)
qualifiers = st.sampled_from(["", "-SNAPSHOT", "-alpha", "-alpha-2", "-beta", "-rc1", "-20240101.120000-3"])
versions = st.builds(lambda v, q: Version(v + q), numeric_versions, qualifiers)


class TestVersion(TestCase):
    def test_numeric_ordering(self) -> None:
        self.assertLess(Version("1.2"), Version("1.10"))
        self.assertLess(Version("4.9"), Version("4.10"))
        self.assertLess(Version("1.9.9"), Version("2"))
        self.assertEqual(Version("1.0"), Version("1.0.0"))
        self.assertEqual(Version("1"), Version("1.0"))

    def test_qualifiers(self) -> None:
        self.assertLess(Version("1.0-SNAPSHOT"), Version("1.0"))
        self.assertLess(Version("1.0-alpha"), Version("1.0-beta"))
        self.assertLess(Version("1.0-alpha-2"), Version("1.0-alpha-10"))
        self.assertLess(Version("1.0"), Version("1.0.1-SNAPSHOT"))
        self.assertEqual(Version("1.0-RC1"), Version("1.0-rc1"))

    def test_compare_versions(self) -> None:
        self.assertEqual(-1, compare_versions("1.0-SNAPSHOT", "1.0"))
        self.assertEqual(0, compare_versions("2.0", "2.0.0"))
        self.assertEqual(1, compare_versions("4.13", "4.12"))

    def test_snapshots(self) -> None:
        assert Version("1.0-SNAPSHOT").is_snapshot
        assert Version("1.0-20240101.120000-3").is_snapshot
        assert not Version("1.0").is_snapshot

    def test_invalid(self) -> None:
        with self.assertRaises(ValueError):
            Version("")
        with self.assertRaises(ValueError):
            Version("...")

    @given(versions, versions)
    def test_antisymmetric(self, a: Version, b: Version) -> None:
        self.assertEqual(compare_versions(a, b), -compare_versions(b, a))
        if a == b:
            self.assertEqual(hash(a), hash(b))

    @given(versions, versions, versions)
    def test_transitive(self, a: Version, b: Version, c: Version) -> None:
        if a <= b and b <= c:
            assert a <= c

    @given(numeric_versions, qualifiers.filter(bool))
    def test_qualified_sorts_before_release(self, numeric: str, qualifier: str) -> None:
        assert Version(numeric + qualifier) < Version(numeric)


class TestVersionRange(TestCase):
    def test_bounds(self) -> None:
        r = parse_version_range("[1.0,2.0)")
        assert "1.0" in r
        assert "1.5" in r
        assert "2.0" not in r
        assert "0.9" not in r
        r = parse_version_range("(1.0,2.0]")
        assert "1.0" not in r
        assert "2.0" in r
        r = parse_version_range("(1.0,)")
        assert "99" in r
        assert "1.0" not in r
        r = parse_version_range("(,1.0]")
        assert "0.1" in r
        assert "1.0" in r
        assert "1.1" not in r

    def test_exact(self) -> None:
        r = parse_version_range("[1.5]")
        assert r.is_exact
        assert "1.5" in r
        assert "1.5.0" in r
        assert "1.6" not in r
        self.assertEqual(VersionRange.exactly("4.13"), parse_version_range("4.13"))

    def test_prefix(self) -> None:
        r = parse_version_range("1.2.*")
        assert "1.2" in r
        assert "1.2.5" in r
        assert "1.2-SNAPSHOT" in r
        assert "1.20" not in r
        assert "1.3" not in r
        self.assertEqual(r, parse_version_range("[1.2.*]"))
        assert "0.1" in parse_version_range("*")

    def test_str(self) -> None:
        self.assertEqual("[1.0,2.0)", str(parse_version_range("[1.0, 2.0)")))
        self.assertEqual("(,3]", str(parse_version_range("(,3]")))
        self.assertEqual("[4.12]", str(parse_version_range("[4.12]")))
        self.assertEqual("1.2.*", str(parse_version_range("[1.2.*]")))

    def test_malformed(self) -> None:
        for text in ("", "[1.0,2.0", "1.0,2.0]", "[2.0,1.0]", "(1.0,1.0)", "[1.0,2.0,3.0]", "[[1.0]]", "(1.0)",
                     "1.*.2", "[1.0,2.0)x"):
            with self.subTest(text=text), self.assertRaises(MalformedRangeError):
                parse_version_range(text)

    def test_filter(self) -> None:
        candidates = [Version(v) for v in ("4.13", "3.8", "4.10", "5.0", "4.12", "4.12")]
        self.assertEqual(
            ["4.10", "4.12", "4.13"], [str(v) for v in parse_version_range("[4,5)").filter(candidates)]
        )

    @given(versions, versions, versions, st.booleans(), st.booleans())
    def test_contains_agrees_with_bounds(
        self, a: Version, b: Version, v: Version, lower_inclusive: bool, upper_inclusive: bool
    ) -> None:
        lower, upper = min(a, b), max(a, b)
        if lower == upper and not (lower_inclusive and upper_inclusive):
            return
        text = "{}{},{}{}".format("[" if lower_inclusive else "(", lower, upper, "]" if upper_inclusive else ")")
        r = parse_version_range(text)
        expected = (lower < v or (lower_inclusive and v == lower)) and (v < upper or (upper_inclusive and v == upper))
        self.assertEqual(expected, r.contains(v))
        self.assertEqual(lower_inclusive, lower in r)
        self.assertEqual(upper_inclusive, upper in r)
