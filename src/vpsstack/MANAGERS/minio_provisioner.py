"""
MinIO bucket, policy and user provisioning through `mc` inside the running
MinIO container.
"""
import json
import logging
from typing import Any, Callable, Dict, Optional

import click
from tenacity import Retrying, RetryError, retry_if_result, stop_after_delay, wait_fixed

from .docker_client import DockerClient

logger = logging.getLogger(__name__)

BUCKET_ACTIONS = [
    "s3:GetObject",
    "s3:PutObject",
    "s3:DeleteObject",
    "s3:ListBucket",
    "s3:GetBucketLocation",
    "s3:ListBucketMultipartUploads",
    "s3:AbortMultipartUpload",
    "s3:ListMultipartUploadParts",
]


def bucket_policy(bucket: str) -> Dict[str, Any]:
    """
    IAM policy granting object and multipart access to a single bucket.
    """
    return {
        "Version": "2012-10-17",
        "Statement": [
            {
                "Effect": "Allow",
                "Action": list(BUCKET_ACTIONS),
                "Resource": [f"arn:aws:s3:::{bucket}", f"arn:aws:s3:::{bucket}/*"],
            }
        ],
    }


class MinioProvisioner:
    """
    Waits for the MinIO service of a stack and configures it with `mc`.
    """
    READY_MARKER = "API: http"

    def __init__(self,
                 docker: DockerClient,
                 stack: str = "minio",
                 poll_interval: float = 2.0,
                 timeout: float = 300.0):
        """
        Initializes the provisioner.

        :param docker: Docker client.
        :param stack: Name of the MinIO stack; the service is `<stack>_minio`.
        :param poll_interval: Seconds between readiness polls.
        :param timeout: Seconds before polling gives up.
        """
        self.docker = docker
        self.service = f"{stack}_minio"
        self.poll_interval = poll_interval
        self.timeout = timeout

    def _poll(self, probe: Callable[[], Any], what: str) -> Any:
        """Calls probe until it returns something truthy or the timeout expires."""
        retryer = Retrying(
            stop=stop_after_delay(self.timeout),
            wait=wait_fixed(self.poll_interval),
            retry=retry_if_result(lambda value: not value),
        )
        try:
            return retryer(probe)
        except RetryError as e:
            raise TimeoutError(f"Timed out after {self.timeout:.0f}s waiting for {what}") from e

    def wait_until_ready(self) -> None:
        """
        Blocks until the service log reports the S3 API endpoint.

        :raises TimeoutError: If MinIO does not come up in time.
        """
        click.echo(f"Waiting for {self.service} to start...")
        self._poll(lambda: self.READY_MARKER in self.docker.service_logs(self.service),
                   f"{self.service} to report '{self.READY_MARKER}'")
        click.echo("MinIO is up!")

    def find_container(self) -> str:
        """
        Resolves the container of the running MinIO task.

        :return: The container ID.
        :raises TimeoutError: If no task or container shows up in time.
        """
        task_id = self._poll(lambda: self.docker.running_task_id(self.service),
                             f"a running {self.service} task")
        logger.debug("MinIO task %s", task_id)
        return self._poll(lambda: self.docker.task_container_id(task_id),
                          f"a container for task {task_id}")

    def provision(self,
                  root_user: str,
                  root_password: str,
                  bucket: str,
                  policy_name: str,
                  user: str,
                  password: str,
                  anonymous_download: bool = False,
                  container: Optional[str] = None) -> str:
        """
        Creates a bucket, a policy scoped to it, and a user holding that policy.

        :param root_user: MinIO root user.
        :param root_password: MinIO root password.
        :param bucket: Bucket to create (kept if it exists).
        :param policy_name: Name of the policy.
        :param user: Access key of the new user.
        :param password: Secret key of the new user; MinIO requires at least 8 characters.
        :param anonymous_download: Also allow anonymous reads of the bucket.
        :param container: Container to use, found automatically when omitted.
        :return: The container the commands ran in.
        """
        container = container or self.find_container()
        click.echo("MinIO container found. Configuring...")

        self.docker.exec(container, ["mc", "alias", "set", "local", "http://127.0.0.1:9000",
                                     root_user, root_password],
                         redact=(root_password,))
        self.docker.exec(container, ["mc", "mb", "--ignore-existing", f"local/{bucket}"])
        self.docker.exec(container, ["mc", "admin", "policy", "create", "local", policy_name,
                                     "/dev/stdin"],
                         input_text=json.dumps(bucket_policy(bucket)))
        self.docker.exec(container, ["mc", "admin", "user", "add", "local", user, password],
                         redact=(password,))
        self.docker.exec(container, ["mc", "admin", "policy", "attach", "local", policy_name,
                                     "--user", user])
        if anonymous_download:
            self.docker.exec(container, ["mc", "anonymous", "set", "download", f"local/{bucket}"])
        click.echo(f"Bucket '{bucket}', policy '{policy_name}' and user '{user}' are ready.")
        return container
