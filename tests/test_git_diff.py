from prgen.services.git_diff import (
    FileLineDelta,
    extract_file_deltas,
    extract_line_numbers,
    file_url,
    line_links,
    line_url,
    split_file_diffs,
)

SINGLE_FILE_DIFF = """diff --git a/src/auth.py b/src/auth.py
index 3b18e51..a9c2f04 100644
--- a/src/auth.py
+++ b/src/auth.py
@@ -5,3 +5,4 @@ def login():
+    validate(user)
     token = issue(user)
-    log(token)
+    audit(token)
+    return token
@@ -40,4 +41,3 @@ def logout():
     session.clear()
-    cache.drop()
-    return None
+    return True
     pass"""


def _count(diff: str, prefix: str, header: str) -> int:
    return sum(1 for line in diff.split("\n") if line.startswith(prefix) and not line.startswith(header))


def test_single_file_numbers():
    numbers = extract_line_numbers(SINGLE_FILE_DIFF)

    assert numbers.added == [5, 7, 8, 42]
    assert numbers.removed == [6, 41, 42]


def test_counts_match_content_lines_and_are_strictly_increasing():
    numbers = extract_line_numbers(SINGLE_FILE_DIFF)

    assert len(numbers.added) == _count(SINGLE_FILE_DIFF, "+", "+++")
    assert len(numbers.removed) == _count(SINGLE_FILE_DIFF, "-", "---")
    assert all(a < b for a, b in zip(numbers.added, numbers.added[1:]))
    assert all(a < b for a, b in zip(numbers.removed, numbers.removed[1:]))


def test_hunk_header_numbering_starts_at_new_start():
    diff = "@@ -5,3 +5,4 @@\n+first\n context\n+second\n-gone"

    numbers = extract_line_numbers(diff)

    assert numbers.added == [5, 7]
    # The context line advanced the old counter to 5, so the removal is 6.
    assert numbers.removed == [6]


def test_context_lines_shift_first_added_line():
    diff = "@@ -10,4 +10,5 @@\n a\n b\n+c\n d"

    assert extract_line_numbers(diff).added == [12]


def test_header_lines_do_not_move_counters():
    diff = "--- a/x\n+++ b/x\n@@ -1 +1 @@\n-old\n+new"

    numbers = extract_line_numbers(diff)

    assert numbers.added == [1]
    assert numbers.removed == [1]


def test_header_without_lengths():
    numbers = extract_line_numbers("@@ -3 +7 @@\n+x")

    assert numbers.added == [7]


def test_malformed_input_never_raises():
    assert extract_line_numbers("") == ([], [])
    assert extract_line_numbers("not a diff\n@@ garbage @@\n\\ No newline at end of file") == ([], [])
    # Content before any hunk header is counted from zero.
    assert extract_line_numbers("+orphan").added == [1]


def test_no_newline_marker_is_ignored():
    diff = "@@ -1,2 +1,2 @@\n-a\n+b\n\\ No newline at end of file\n+c"

    assert extract_line_numbers(diff).added == [1, 2]


def test_file_line_delta_from_diff():
    delta = FileLineDelta.from_diff("src/auth.py", SINGLE_FILE_DIFF)

    assert delta.file == "src/auth.py"
    assert delta.added == (5, 7, 8, 42)
    assert delta.removed == (6, 41, 42)


MULTI_FILE_DIFF = """diff --git a/README.md b/README.md
index 1111111..2222222 100644
--- a/README.md
+++ b/README.md
@@ -1,2 +1,3 @@
 # Project
+New intro line
 Usage
diff --git a/old.txt b/old.txt
deleted file mode 100644
index 3333333..0000000
--- a/old.txt
+++ /dev/null
@@ -1,2 +0,0 @@
-one
-two
diff --git a/new.py b/new.py
new file mode 100644
index 0000000..4444444
--- /dev/null
+++ b/new.py
@@ -0,0 +1,2 @@
+import os
+print(os.getcwd())"""


def test_split_file_diffs_paths():
    assert [path for path, _ in split_file_diffs(MULTI_FILE_DIFF)] == ["README.md", "old.txt", "new.py"]


def test_extract_file_deltas():
    deltas = {d.file: d for d in extract_file_deltas(MULTI_FILE_DIFF)}

    assert deltas["README.md"].added == (2,)
    assert deltas["README.md"].removed == ()
    assert deltas["old.txt"].removed == (1, 2)
    assert deltas["old.txt"].added == ()
    assert deltas["new.py"].added == (1, 2)


def test_split_ignores_preamble():
    assert split_file_diffs("just text\nno headers") == []


def test_links():
    base = "https://github.com/"

    assert file_url(base, "acme", "api", "feature/x", "src/a b.py") == (
        "https://github.com/acme/api/blob/feature/x/src/a%20b.py"
    )
    assert line_url(base, "acme", "api", "main", "src/a.py", 12) == (
        "https://github.com/acme/api/blob/main/src/a.py#L12"
    )


def test_line_links_limit():
    links = line_links("https://github.com", "acme", "api", "main", "a.py", range(1, 30))

    parts = links.split(", ")
    assert len(parts) == 10
    assert parts[0].endswith("#L1")
    assert parts[-1].endswith("#L10")
