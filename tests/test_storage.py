import base64
import pytest
from utils.storage import BlobStorage, LocalDiskStorage, decode_upload


def test_interface_cannot_be_instantiated():
    with pytest.raises(TypeError):
        BlobStorage()


def test_partial_backend_is_rejected():
    class SaveOnly(BlobStorage):
        def save(self, data, prefix, extension=""):
            return "key"

    with pytest.raises(TypeError):
        SaveOnly()


def test_local_disk_save_and_delete(tmp_path):
    storage = LocalDiskStorage(tmp_path / "uploads")
    key = storage.save(b"license", prefix="license", extension=".png")
    assert key.startswith("license-")
    assert key.endswith(".png")
    assert (tmp_path / "uploads" / key).read_bytes() == b"license"

    storage.delete(key)
    assert not (tmp_path / "uploads" / key).exists()
    # deleting twice is harmless
    storage.delete(key)


def test_decode_data_url():
    encoded = base64.b64encode(b"photo").decode()
    data, extension = decode_upload(f"data:image/jpeg;base64,{encoded}")
    assert data == b"photo"
    assert extension == ".jpg"


def test_decode_bare_base64_has_no_extension():
    data, extension = decode_upload(base64.b64encode(b"photo").decode())
    assert data == b"photo"
    assert extension == ""


def test_decode_rejects_garbage():
    with pytest.raises(ValueError):
        decode_upload("not base64 !!")
