import unittest

from botocore.exceptions import ClientError, EndpointConnectionError

from s3_purge.errors import StorageCallError
from s3_purge.models import VersionRecord
from s3_purge.services import DELETE_BATCH_SIZE, S3PurgeService


def client_error(code, operation):
    return ClientError({"Error": {"Code": code, "Message": code}}, operation)


class FakeS3Client:
    def __init__(
        self,
        object_responses=None,
        version_responses=None,
        head_errors=None,
        delete_responses=None,
        delete_bucket_error=None,
    ):
        self.object_responses = {name: iter(responses) for name, responses in (object_responses or {}).items()}
        self.version_responses = {name: iter(responses) for name, responses in (version_responses or {}).items()}
        self.head_errors = head_errors or {}
        self.delete_responses = list(delete_responses or [])
        self.delete_bucket_error = delete_bucket_error
        self.head_bucket_calls = []
        self.list_objects_kwargs = []
        self.list_versions_kwargs = []
        self.delete_objects_calls = []
        self.delete_bucket_calls = []

    def head_bucket(self, **kwargs):
        self.head_bucket_calls.append(kwargs["Bucket"])
        error = self.head_errors.get(kwargs["Bucket"])
        if error:
            raise error
        return {}

    def list_objects_v2(self, **kwargs):
        self.list_objects_kwargs.append(kwargs)
        key = (kwargs["Bucket"], kwargs.get("Prefix", ""))
        response = next(self.object_responses[key])
        if isinstance(response, Exception):
            raise response
        return response

    def list_object_versions(self, **kwargs):
        self.list_versions_kwargs.append(kwargs)
        response = next(self.version_responses[kwargs["Bucket"]])
        if isinstance(response, Exception):
            raise response
        return response

    def delete_objects(self, **kwargs):
        self.delete_objects_calls.append(kwargs)
        if self.delete_responses:
            return self.delete_responses.pop(0)
        return {"Deleted": kwargs["Delete"]["Objects"]}

    def delete_bucket(self, **kwargs):
        self.delete_bucket_calls.append(kwargs["Bucket"])
        if self.delete_bucket_error:
            raise self.delete_bucket_error
        return {}


def make_service(fake_client):
    return S3PurgeService(client_factory=lambda *_, **__: fake_client)


class S3PurgeServiceTests(unittest.TestCase):
    def test_client_factory_receives_only_configured_parameters(self):
        calls = []

        def factory(*args, **kwargs):
            calls.append((args, kwargs))
            return FakeS3Client()

        service = S3PurgeService(
            client_factory=factory,
            endpoint_url="https://s3.example.com",
            access_key="access",
            secret_key="secret",
        )
        service.bucket_exists("alpha")
        service.bucket_exists("beta")

        self.assertEqual(1, len(calls))
        args, kwargs = calls[0]
        self.assertEqual(("s3",), args)
        self.assertEqual("https://s3.example.com", kwargs["endpoint_url"])
        self.assertEqual("access", kwargs["aws_access_key_id"])
        self.assertEqual("secret", kwargs["aws_secret_access_key"])
        self.assertNotIn("region_name", kwargs)
        self.assertIn("config", kwargs)

    def test_bucket_exists(self):
        fake_client = FakeS3Client(
            head_errors={
                "missing": client_error("404", "HeadBucket"),
                "gone": client_error("NoSuchBucket", "HeadBucket"),
            }
        )
        service = make_service(fake_client)

        self.assertTrue(service.bucket_exists("alpha"))
        self.assertFalse(service.bucket_exists("missing"))
        self.assertFalse(service.bucket_exists("gone"))

    def test_bucket_exists_raises_for_access_denied(self):
        fake_client = FakeS3Client(head_errors={"alpha": client_error("403", "HeadBucket")})
        service = make_service(fake_client)

        with self.assertRaises(StorageCallError) as ctx:
            service.bucket_exists("alpha")

        self.assertEqual("HeadBucket", ctx.exception.operation)
        self.assertEqual(254, ctx.exception.exit_code)

    def test_connection_errors_use_client_exit_code(self):
        error = EndpointConnectionError(endpoint_url="https://s3.example.com")
        fake_client = FakeS3Client(head_errors={"alpha": error})
        service = make_service(fake_client)

        with self.assertRaises(StorageCallError) as ctx:
            service.bucket_exists("alpha")

        self.assertEqual(255, ctx.exception.exit_code)
        self.assertIs(error, ctx.exception.__cause__)

    def test_list_prefixes_follows_continuation_tokens(self):
        fake_client = FakeS3Client(
            object_responses={
                ("alpha", ""): [
                    {
                        "CommonPrefixes": [{"Prefix": "logs/"}],
                        "IsTruncated": True,
                        "NextContinuationToken": "token-1",
                    },
                    {"CommonPrefixes": [{"Prefix": "data/"}], "IsTruncated": False},
                ]
            }
        )
        service = make_service(fake_client)

        prefixes = service.list_prefixes("alpha")

        self.assertEqual(["logs/", "data/"], prefixes)
        self.assertEqual("/", fake_client.list_objects_kwargs[0]["Delimiter"])
        self.assertNotIn("ContinuationToken", fake_client.list_objects_kwargs[0])
        self.assertEqual("token-1", fake_client.list_objects_kwargs[1]["ContinuationToken"])

    def test_list_root_objects_ignores_prefixes(self):
        fake_client = FakeS3Client(
            object_responses={
                ("alpha", ""): [
                    {
                        "Contents": [{"Key": "a.txt"}, {"Key": "b.txt"}],
                        "CommonPrefixes": [{"Prefix": "logs/"}],
                        "IsTruncated": False,
                    }
                ]
            }
        )
        service = make_service(fake_client)

        self.assertEqual(["a.txt", "b.txt"], service.list_root_objects("alpha"))

    def test_delete_prefix_lists_recursively_and_batches(self):
        keys = [f"logs/{index}.log" for index in range(2500)]
        fake_client = FakeS3Client(
            object_responses={
                ("alpha", "logs/"): [
                    {
                        "Contents": [{"Key": key} for key in keys[:1000]],
                        "IsTruncated": True,
                        "NextContinuationToken": "token-1",
                    },
                    {"Contents": [{"Key": key} for key in keys[1000:]], "IsTruncated": False},
                ]
            }
        )
        service = make_service(fake_client)

        deleted = service.delete_prefix("alpha", "logs/")

        self.assertEqual(2500, deleted)
        self.assertNotIn("Delimiter", fake_client.list_objects_kwargs[0])
        self.assertEqual("logs/", fake_client.list_objects_kwargs[0]["Prefix"])
        batch_sizes = [len(call["Delete"]["Objects"]) for call in fake_client.delete_objects_calls]
        self.assertEqual([DELETE_BATCH_SIZE, DELETE_BATCH_SIZE, 500], batch_sizes)
        self.assertEqual({"Key": "logs/0.log"}, fake_client.delete_objects_calls[0]["Delete"]["Objects"][0])

    def test_delete_objects_without_keys_issues_no_call(self):
        fake_client = FakeS3Client()
        service = make_service(fake_client)

        self.assertEqual(0, service.delete_objects("alpha", []))
        self.assertEqual([], fake_client.delete_objects_calls)

    def test_partial_batch_failure_raises(self):
        fake_client = FakeS3Client(
            delete_responses=[
                {
                    "Deleted": [{"Key": "a.txt"}],
                    "Errors": [{"Key": "b.txt", "Code": "AccessDenied", "Message": "Access Denied"}],
                }
            ]
        )
        service = make_service(fake_client)

        with self.assertRaises(StorageCallError) as ctx:
            service.delete_objects("alpha", ["a.txt", "b.txt"])

        self.assertIn("b.txt", str(ctx.exception))
        self.assertEqual(254, ctx.exception.exit_code)

    def test_list_versions_separates_versions_and_markers(self):
        fake_client = FakeS3Client(
            version_responses={
                "beta": [
                    {
                        "Versions": [{"Key": "a.txt", "VersionId": "v1"}, {"Key": "a.txt", "VersionId": "v2"}],
                        "DeleteMarkers": [{"Key": "a.txt", "VersionId": "m1"}],
                        "IsTruncated": True,
                        "NextKeyMarker": "a.txt",
                        "NextVersionIdMarker": "v2",
                    },
                    {"Versions": [{"Key": "b.txt", "VersionId": "v3"}], "IsTruncated": False},
                ]
            }
        )
        service = make_service(fake_client)

        listing = service.list_versions("beta")

        self.assertEqual(
            [VersionRecord("a.txt", "v1"), VersionRecord("a.txt", "v2"), VersionRecord("b.txt", "v3")],
            listing.versions,
        )
        self.assertEqual([VersionRecord("a.txt", "m1")], listing.delete_markers)
        self.assertEqual("a.txt", fake_client.list_versions_kwargs[1]["KeyMarker"])
        self.assertEqual("v2", fake_client.list_versions_kwargs[1]["VersionIdMarker"])

    def test_list_versions_sends_only_markers_the_provider_returned(self):
        fake_client = FakeS3Client(
            version_responses={
                "beta": [
                    {
                        "Versions": [{"Key": "a.txt", "VersionId": "v1"}],
                        "IsTruncated": True,
                        "NextKeyMarker": "a.txt",
                    },
                    {"Versions": [{"Key": "b.txt", "VersionId": "v2"}], "IsTruncated": False},
                ]
            }
        )
        service = make_service(fake_client)

        listing = service.list_versions("beta")

        self.assertEqual(2, len(listing.versions))
        self.assertEqual("a.txt", fake_client.list_versions_kwargs[1]["KeyMarker"])
        self.assertNotIn("VersionIdMarker", fake_client.list_versions_kwargs[1])

    def test_list_versions_stops_when_truncated_page_has_no_markers(self):
        fake_client = FakeS3Client(
            version_responses={
                "beta": [
                    {"Versions": [{"Key": "a.txt", "VersionId": "v1"}], "IsTruncated": True},
                ]
            }
        )
        service = make_service(fake_client)

        listing = service.list_versions("beta")

        self.assertEqual([VersionRecord("a.txt", "v1")], listing.versions)
        self.assertEqual(1, len(fake_client.list_versions_kwargs))

    def test_list_versions_of_unversioned_bucket_is_empty(self):
        fake_client = FakeS3Client(version_responses={"alpha": [{"IsTruncated": False}]})
        service = make_service(fake_client)

        listing = service.list_versions("alpha")

        self.assertEqual([], listing.versions)
        self.assertEqual([], listing.delete_markers)

    def test_delete_versions_sends_version_ids(self):
        fake_client = FakeS3Client()
        service = make_service(fake_client)

        deleted = service.delete_versions("beta", [VersionRecord("a.txt", "v1")])

        self.assertEqual(1, deleted)
        self.assertEqual(
            [{"Key": "a.txt", "VersionId": "v1"}],
            fake_client.delete_objects_calls[0]["Delete"]["Objects"],
        )
        self.assertTrue(fake_client.delete_objects_calls[0]["Delete"]["Quiet"])

    def test_delete_bucket_wraps_client_errors(self):
        fake_client = FakeS3Client(delete_bucket_error=client_error("BucketNotEmpty", "DeleteBucket"))
        service = make_service(fake_client)

        with self.assertRaises(StorageCallError) as ctx:
            service.delete_bucket("alpha")

        self.assertEqual("DeleteBucket", ctx.exception.step)
        self.assertEqual(["alpha"], fake_client.delete_bucket_calls)


if __name__ == "__main__":
    unittest.main()
