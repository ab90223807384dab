import pytest

from tsj.envconfig import EnvError
from tsj.firebase import Config, content_type, extension

ENV = {
    "FIREBASE_CREDENTIALS_FILE": "/etc/creds.json",
    "FIREBASE_DATABASE_URL": "https://db.example.com",
    "FIREBASE_STORAGE_BUCKET": "bucket.example.com",
}


def test_config_from_env(monkeypatch):
    for key, value in ENV.items():
        monkeypatch.setenv(key, value)
    config = Config.from_env()
    assert config == Config(ENV["FIREBASE_CREDENTIALS_FILE"], ENV["FIREBASE_DATABASE_URL"], ENV["FIREBASE_STORAGE_BUCKET"])


@pytest.mark.parametrize("missing", sorted(ENV))
def test_config_requires_each_variable(monkeypatch, missing):
    for key, value in ENV.items():
        monkeypatch.setenv(key, value)
    monkeypatch.delenv(missing)
    with pytest.raises(EnvError):
        Config.from_env()


def test_content_type_case_insensitive():
    assert content_type({"content-type": "image/png"}) == "image/png"


def test_content_type_missing():
    assert content_type({}) == ""


def test_extension_from_disposition():
    headers = {"Content-Disposition": 'form-data; name="file"; filename="photo.png"'}
    assert extension(headers) == ".png"


def test_extension_without_dot():
    headers = {"Content-Disposition": 'form-data; name="file"; filename="README"'}
    assert extension(headers) == ""


def test_extension_too_few_parts():
    with pytest.raises(ValueError, match="can not extract file extension"):
        extension({"Content-Disposition": "form-data; name=file"})