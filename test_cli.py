"""Tests for the stashbox command line interface."""

import pytest

from conftest import FakeS3Client
from stashbox.cli import format_size, main


CONFIG_YAML = """
store:
  endpoint_url: https://account.r2.cloudflarestorage.com
  access_key_id: key
  secret_access_key: secret
  bucket_name: stashbox
quota:
  default_limit_bytes: 1048576
app:
  log_level: WARNING
{owner_line}
"""


@pytest.fixture
def fake_s3(monkeypatch):
    client = FakeS3Client()
    monkeypatch.setattr("stashbox.object_store.boto3.client", lambda *args, **kwargs: client)
    return client


def _write_config(tmp_path, owner="u1"):
    owner_line = f"  owner_id: {owner}" if owner else ""
    path = tmp_path / "config.yaml"
    path.write_text(CONFIG_YAML.format(owner_line=owner_line))
    return str(path)


@pytest.fixture
def run(tmp_path, fake_s3, capsys):
    config_path = _write_config(tmp_path)

    def _run(*argv):
        code = main(['--config', config_path, *argv])
        captured = capsys.readouterr()
        return code, captured.out, captured.err

    return _run


def _uploaded_key(out):
    for line in out.splitlines():
        if line.strip().startswith('key:'):
            return line.split('key:', 1)[1].strip()
    raise AssertionError(f"no key in output: {out!r}")


@pytest.mark.parametrize("size, expected", [
    (0, "0 Bytes"),
    (512, "512 Bytes"),
    (1536, "1.5 KB"),
    (10 * 1024 ** 3, "10 GB"),
])
def test_format_size(size, expected):
    assert format_size(size) == expected


def test_check(run):
    code, out, _ = run('check')
    assert code == 0
    assert "Connected to bucket stashbox" in out


def test_check_reports_missing_bucket(tmp_path, monkeypatch, capsys):
    client = FakeS3Client(bucket='other')
    monkeypatch.setattr("stashbox.object_store.boto3.client", lambda *args, **kwargs: client)

    code = main(['--config', _write_config(tmp_path), 'check'])
    assert code == 1
    assert "✗" in capsys.readouterr().err


def test_folder_and_file_workflow(run, tmp_path):
    local = tmp_path / "notes.txt"
    local.write_bytes(b"hello world")

    assert run('mkdir', 'Docs')[0] == 0

    code, out, _ = run('put', str(local), '--parent', 'Docs')
    assert code == 0
    assert "Uploaded Docs/notes.txt (11 Bytes)" in out
    key = _uploaded_key(out)
    assert key.startswith("u1/Docs/") and key.endswith("-notes.txt")

    code, out, _ = run('ls')
    assert code == 0
    assert "Docs/" in out

    code, out, _ = run('ls', 'Docs')
    assert "notes.txt" in out
    assert key in out

    dest = tmp_path / "copy.txt"
    assert run('get', key, str(dest))[0] == 0
    assert dest.read_bytes() == b"hello world"

    code, out, _ = run('usage')
    assert code == 0
    assert "Used 11 Bytes of 1 MB" in out


def test_share_and_resolve(run, tmp_path):
    local = tmp_path / "photo.png"
    local.write_bytes(b"\x89PNG" + b"\x00" * 20)
    key = _uploaded_key(run('put', str(local))[1])

    code, out, _ = run('share', key)
    assert code == 0
    token = out.strip()

    assert run('share', key)[1].strip() == token

    code, out, _ = run('resolve', token)
    assert code == 0
    assert "photo.png" in out
    assert "image/png" in out


def test_resolve_unknown_token(run):
    code, _, err = run('resolve', 'A' * 43)
    assert code == 1
    assert "File not found or link expired" in err


def test_rm_is_quiet_about_missing_entries(run, tmp_path):
    local = tmp_path / "a.txt"
    local.write_bytes(b"a")
    key = _uploaded_key(run('put', str(local))[1])

    code, out, _ = run('rm', key)
    assert code == 0
    assert f"Deleted {key}" in out

    code, out, _ = run('rm', key)
    assert code == 0
    assert "Nothing to delete" in out


def test_rm_folder_removes_contents(run, fake_s3, tmp_path):
    local = tmp_path / "a.txt"
    local.write_bytes(b"a")
    run('mkdir', 'Docs')
    run('mkdir', 'Inner', '--parent', 'Docs')
    run('put', str(local), '--parent', 'Docs/Inner')

    assert run('rm', 'u1/Docs/.foldermarker')[0] == 0
    assert not [key for key in fake_s3.objects if key.startswith('u1/')]


def test_put_into_missing_folder_fails(run, tmp_path):
    local = tmp_path / "a.txt"
    local.write_bytes(b"a")

    code, _, err = run('put', str(local), '--parent', 'Nope')
    assert code == 1
    assert "Folder not found" in err


def test_put_over_quota_fails(run, tmp_path):
    local = tmp_path / "big.bin"
    local.write_bytes(b"x" * (1048576 + 1))

    code, _, err = run('put', str(local))
    assert code == 1
    assert "Storage quota exceeded" in err


def test_invalid_folder_name(run):
    code, _, err = run('mkdir', '..')
    assert code == 1
    assert "✗" in err


def test_missing_owner(tmp_path, fake_s3, capsys):
    code = main(['--config', _write_config(tmp_path, owner=None), 'ls'])
    assert code == 2
    assert "No owner given" in capsys.readouterr().err


def test_owner_flag_overrides_config(run, fake_s3):
    assert run('--owner', 'u2', 'mkdir', 'Mine')[0] == 0
    assert 'u2/Mine/.foldermarker' in fake_s3.objects


def test_missing_config_file(tmp_path, capsys):
    code = main(['--config', str(tmp_path / 'nope.yaml'), 'ls'])
    assert code == 1
    assert "Configuration file not found" in capsys.readouterr().err


def test_share_folder_is_rejected(run):
    run('mkdir', 'Docs')

    code, _, err = run('share', 'u1/Docs/.foldermarker')
    assert code == 1
    assert "Only files can be shared" in err
