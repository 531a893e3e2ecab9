import io
from typing import Dict, Optional

import pytest
from botocore.response import StreamingBody
from botocore.stub import Stubber

from cfr2.client import make_r2_client
from cfr2.config import R2Config


@pytest.fixture
def r2_cfg() -> R2Config:
    return R2Config(
        account_id="acct123",
        access_key_id="AKIDEXAMPLE",
        secret_access_key="secret",
        default_bucket="mybucket",
    )


@pytest.fixture
def s3(r2_cfg):
    return make_r2_client(r2_cfg)


@pytest.fixture
def stubber(s3):
    with Stubber(s3) as stub:
        yield stub
        stub.assert_no_pending_responses()


def streaming_body(data: bytes) -> StreamingBody:
    return StreamingBody(io.BytesIO(data), len(data))


class FakeS3:
    """In-memory stand-in for the handful of S3 client calls the CLI makes.

    `fail` maps an operation name to the exception it should raise.
    """

    def __init__(self, objects: Optional[Dict[str, bytes]] = None, fail: Optional[dict] = None):
        self.objects: Dict[str, bytes] = dict(objects or {})
        self.fail = dict(fail or {})
        self.calls = []

    def _check(self, op: str) -> None:
        self.calls.append(op)
        if op in self.fail:
            raise self.fail[op]

    def get_paginator(self, name):
        fake = self

        class _Paginator:
            def paginate(self, Bucket):
                fake._check("list_objects_v2")
                contents = [{"Key": k, "Size": len(v)} for k, v in sorted(fake.objects.items())]
                yield {"Contents": contents} if contents else {}

        return _Paginator()

    def get_object(self, Bucket, Key):
        self._check("get_object")
        data = self.objects[Key]
        return {"Body": streaming_body(data), "ContentLength": len(data)}

    def upload_fileobj(self, Fileobj, Bucket, Key):
        self._check("upload_fileobj")
        buf = bytearray()
        while True:
            chunk = Fileobj.read(4)
            if not chunk:
                break
            buf.extend(chunk)
        self.objects[Key] = bytes(buf)

    def copy_object(self, Bucket, Key, CopySource):
        self._check("copy_object")
        self.objects[Key] = self.objects[CopySource["Key"]]

    def delete_object(self, Bucket, Key):
        self._check("delete_object")
        self.objects.pop(Key, None)

    def generate_presigned_url(self, ClientMethod, Params, ExpiresIn):
        self._check("generate_presigned_url")
        return f"https://example.invalid/{Params['Bucket']}/{Params['Key']}?X-Amz-Expires={ExpiresIn}"
