import base64
import io

import pytest

from restlean.checksum import base64_encode, dir_files, hash_dir, hash_files, hash_mod_file


def _memory_opener(contents):
    return lambda name: io.BytesIO(contents[name])


@pytest.fixture
def tree(tmp_path):
    (tmp_path / "a.txt").write_bytes(b"alpha")
    (tmp_path / "sub").mkdir()
    (tmp_path / "sub" / "b.txt").write_bytes(b"beta")
    (tmp_path / ".git").mkdir()
    (tmp_path / ".git" / "config").write_bytes(b"ignored")
    return tmp_path


def test_base64_encode_standard_alphabet():
    assert base64_encode(b"hello") == "aGVsbG8="


def test_hash_files_of_nothing_is_hash_of_empty_input():
    result = hash_files([], _memory_opener({}))
    assert result.hash_synthesized == "e3b0c44298fc1c149afbf4c8996fb92427ae41e4649b934ca495991b7852b855"


def test_hash_files_invariants():
    result = hash_files(["x"], _memory_opener({"x": b"data"}))
    assert result.checksum == "h1:" + result.hash_synthesized_base64
    assert base64.b64decode(result.hash_synthesized_base64) == bytes.fromhex(result.hash_synthesized)


def test_hash_files_order_independent():
    contents = {"a": b"1", "b": b"2", "c": b"3"}
    forward = hash_files(["a", "b", "c"], _memory_opener(contents))
    backward = hash_files(["c", "b", "a"], _memory_opener(contents))
    assert forward == backward


def test_hash_files_depends_on_content():
    first = hash_files(["a"], _memory_opener({"a": b"1"}))
    second = hash_files(["a"], _memory_opener({"a": b"2"}))
    assert first.hash_synthesized != second.hash_synthesized


def test_hash_files_rejects_newline_names():
    with pytest.raises(ValueError):
        hash_files(["bad\nname"], _memory_opener({"bad\nname": b""}))


def test_dir_files_skips_git_and_uses_slashes(tree):
    assert dir_files(str(tree), "") == ["a.txt", "sub/b.txt"]


def test_dir_files_joins_prefix(tree):
    assert dir_files(str(tree), "mod@v1") == ["mod@v1/a.txt", "mod@v1/sub/b.txt"]


def test_dir_files_missing_directory(tmp_path):
    with pytest.raises(FileNotFoundError):
        dir_files(str(tmp_path / "absent"), "")


def test_hash_dir_matches_hash_files(tree):
    contents = {"mod@v1/a.txt": b"alpha", "mod@v1/sub/b.txt": b"beta"}
    expected = hash_files(list(contents), _memory_opener(contents))
    assert hash_dir(str(tree), "mod@v1") == expected


def test_hash_mod_file_matches_single_file_hash(tmp_path):
    mod_file = tmp_path / "go.mod"
    mod_file.write_bytes(b"module example.com/demo\n")
    result = hash_mod_file(str(mod_file))
    as_dir = hash_files(["go.mod"], _memory_opener({"go.mod": b"module example.com/demo\n"}))
    assert result.hash_synthesized == as_dir.hash_synthesized
    assert result.checksum == as_dir.checksum
    assert base64.b64decode(result.hash_base64) == bytes.fromhex(result.hash)


def test_hash_mod_file_missing(tmp_path):
    with pytest.raises(FileNotFoundError):
        hash_mod_file(str(tmp_path / "nothing"))