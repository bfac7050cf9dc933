"""Tests for pattern compilation (glob and regex syntax)."""

from pathlib import PurePosixPath

import pytest

from gitpublish._glob import (
    ALWAYS_IGNORED,
    always_ignored,
    compile_pattern,
    escape,
    parse_pattern_list,
    read_pattern_file,
    with_default_syntax,
)
from gitpublish.exceptions import ConfigurationError, PatternError


class TestDefaultSyntax:
    def test_plain_pattern_gets_glob_prefix(self):
        assert with_default_syntax("src/**") == "glob:src/**"

    def test_prefixed_patterns_pass_through(self):
        assert with_default_syntax("glob:*.txt") == "glob:*.txt"
        assert with_default_syntax("regex:.*") == "regex:.*"

    def test_default_equals_explicit_glob(self):
        implicit = compile_pattern("src/**")
        explicit = compile_pattern("glob:src/**")
        assert implicit == explicit
        for path in ["src/a.txt", "src/x/y/z", "src", "test/a.txt", "srcx/a"]:
            assert implicit.matches(path) == explicit.matches(path)

    def test_matcher_records_syntax(self):
        assert compile_pattern("*.txt").syntax == "glob"
        assert compile_pattern("regex:.*").syntax == "regex"
        assert str(compile_pattern("*.txt")) == "glob:*.txt"


class TestGlobMatching:
    def test_star_stays_in_segment(self):
        m = compile_pattern("*.txt")
        assert m.matches("a.txt")
        assert not m.matches("dir/a.txt")

    def test_double_star_crosses_segments(self):
        m = compile_pattern("src/**")
        assert m.matches("src/a.txt")
        assert m.matches("src/sub/deep/b.txt")
        assert not m.matches("src")
        assert not m.matches("other/src/a.txt")

    def test_double_star_prefix(self):
        m = compile_pattern("**/*.tmp")
        assert m.matches("src/c.tmp")
        assert m.matches("a/b/c.tmp")
        # '**/' needs at least one folder
        assert not m.matches("c.tmp")

    def test_question_mark(self):
        m = compile_pattern("file?.txt")
        assert m.matches("file1.txt")
        assert not m.matches("file12.txt")
        assert not compile_pattern("a?b").matches("a/b")

    def test_character_class(self):
        m = compile_pattern("v[0-9].txt")
        assert m.matches("v1.txt")
        assert not m.matches("vx.txt")

    def test_negated_class(self):
        m = compile_pattern("[!a]*")
        assert m.matches("bcd")
        assert not m.matches("abc")
        assert not m.matches("/x")

    def test_class_range_never_matches_separator(self):
        # '/' lies between '+' and '9'
        m = compile_pattern("a[+-9]b")
        assert m.matches("a5b")
        assert not m.matches("a/b")

    def test_alternation(self):
        m = compile_pattern("{src,test}/**")
        assert m.matches("src/a")
        assert m.matches("test/b/c")
        assert not m.matches("doc/a")

    def test_comma_outside_group_is_literal(self):
        assert compile_pattern("a,b").matches("a,b")

    def test_escape(self):
        m = compile_pattern("\\*.txt")
        assert m.matches("*.txt")
        assert not m.matches("a.txt")

    def test_dotfiles_are_not_special(self):
        assert compile_pattern("*").matches(".hidden")
        assert compile_pattern(".git/**").matches(".git/config")

    def test_regex_metacharacters_are_literal(self):
        m = compile_pattern("a+b(1).txt")
        assert m.matches("a+b(1).txt")
        assert not m.matches("aab1.txt")

    def test_accepts_path_objects(self):
        assert compile_pattern("src/*.txt").matches(PurePosixPath("src/a.txt"))


class TestRegexMatching:
    def test_full_match_required(self):
        m = compile_pattern("regex:src/.*\\.txt")
        assert m.matches("src/a.txt")
        assert m.matches("src/sub/b.txt")
        assert not m.matches("xsrc/a.txt")
        assert not m.matches("src/a.txt.bak")


class TestMalformedPatterns:
    @pytest.mark.parametrize("pattern", [
        "regex:(",
        "[abc",
        "{a,b",
        "{a,{b}}",
        "abc\\",
        "a[/]b",
    ])
    def test_malformed_raises(self, pattern):
        with pytest.raises(PatternError) as exc_info:
            compile_pattern(pattern)
        assert exc_info.value.pattern == pattern

    def test_pattern_error_is_configuration_error(self):
        with pytest.raises(ConfigurationError):
            compile_pattern("regex:[")


class TestParsePatternList:
    def test_skips_blank_and_comments(self):
        matchers = parse_pattern_list(["", "   ", "# comment", "  # indented", "*.txt"])
        assert [str(m) for m in matchers] == ["glob:*.txt"]

    def test_strips_leading_whitespace(self):
        (m,) = parse_pattern_list(["   src/**"])
        assert m.matches("src/a")

    def test_keeps_order(self):
        matchers = parse_pattern_list(["b/**", "regex:a.*", "c"])
        assert [str(m) for m in matchers] == ["glob:b/**", "regex:a.*", "glob:c"]

    def test_none_is_empty(self):
        assert parse_pattern_list(None) == []

    def test_read_pattern_file(self, tmp_path):
        pfile = tmp_path / "patterns.txt"
        pfile.write_text("src/**\n# comment\n\ndocs/*.md\n")
        matchers = parse_pattern_list(read_pattern_file(pfile))
        assert [str(m) for m in matchers] == ["glob:src/**", "glob:docs/*.md"]


class TestHelpers:
    def test_always_ignored_covers_git_dir(self):
        assert ALWAYS_IGNORED == (".git/**",)
        (m,) = always_ignored()
        assert m.matches(".git/HEAD")
        assert m.matches(".git/objects/ab/cdef")
        assert not m.matches("src/.gitignore")

    def test_escape_matches_literally(self):
        literal = "build[1]/{x,y}*"
        assert compile_pattern(escape(literal)).matches(literal)
        assert not compile_pattern(escape(literal)).matches("build1/x")
