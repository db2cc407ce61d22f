import os
import sys
import asyncio
import logging
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path

import dagger
from dagger import dag

from base import log_level_from, setup_logging
from errors import BuildToolError, ConfigError, InvalidArguments
from tag import head_root_tag

logger = logging.getLogger("docker-build-proxy")

PROG = "docker-build-proxy"


def validate_no_args(argv: Sequence[str], prog: str = PROG) -> None:
    if argv:
        raise InvalidArguments(f"no arguments allowed for {prog}, given: {' '.join(argv)}")


@dataclass
class ImageEnv:
    registry: str = "gcr.io/runconduit"
    image_name: str = "proxy"
    tag: str = ""
    context: Path = Path(".")
    dockerfile: str = "proxy/Dockerfile"
    push: bool = False
    unoptimized: str = ""
    log_level: str = "WARNING"
    created: str = field(
        default_factory=lambda: datetime.now(timezone.utc).isoformat(timespec="seconds")
    )

    @classmethod
    def from_environ(cls, environ: Mapping[str, str] = os.environ) -> "ImageEnv":
        return cls(
            registry=environ.get("DOCKER_REGISTRY") or "gcr.io/runconduit",
            tag=environ.get("IMAGE_TAG", "").strip(),
            context=Path(environ.get("DOCKER_CONTEXT") or "."),
            dockerfile=environ.get("DOCKERFILE") or "proxy/Dockerfile",
            push=environ.get("DOCKER_PUSH") == "1",
            unoptimized=environ.get("PROXY_UNOPTIMIZED", ""),
            log_level=log_level_from(environ),
        )

    @property
    def repo(self) -> str:
        return f"{self.registry}/{self.image_name}"

    def ref(self, tag: str) -> str:
        return f"{self.repo}:{tag}"

    def build_args(self) -> list[dagger.BuildArg]:
        if not self.unoptimized:
            return []
        return [dagger.BuildArg(name="PROXY_UNOPTIMIZED", value=self.unoptimized)]


async def publish_with_retry(
    ctr: dagger.Container,
    ref: str,
    *,
    retries: int = 3,
) -> str:
    delay = 1.0
    for i in range(retries):
        try:
            return await ctr.publish(ref)
        except dagger.DaggerError:
            if i == retries - 1:
                raise
            logger.warning("publish of %s failed, retrying in %.0fs", ref, delay)
            await asyncio.sleep(delay)
            delay *= 2.0


def build_container(env: ImageEnv, tag: str) -> dagger.Container:
    src = dag.host().directory(str(env.context), exclude=["target/", ".git/"])
    return (
        src.docker_build(dockerfile=env.dockerfile, build_args=env.build_args())
        .with_label("org.opencontainers.image.created", env.created)
        .with_label("org.opencontainers.image.version", tag)
    )


async def build_image(env: ImageEnv, tag: str) -> str:
    ref = env.ref(tag)
    cfg = dagger.Config(log_output=sys.stderr)
    async with dagger.connection(cfg):
        ctr = build_container(env, tag)
        if env.push:
            ref = await publish_with_retry(ctr, ref)
        else:
            await ctr.export_image(ref)
    return ref


def main(argv: Sequence[str] | None = None) -> int:
    args = list(sys.argv[1:] if argv is None else argv)
    try:
        env = ImageEnv.from_environ()
    except ConfigError as exc:
        setup_logging("WARNING")
        logger.error("%s", exc)
        return exc.exit_code
    setup_logging(env.log_level)
    try:
        validate_no_args(args)
        tag = env.tag or head_root_tag(env.context)
        ref = asyncio.run(build_image(env, tag))
    except BuildToolError as exc:
        logger.error("%s", exc)
        return exc.exit_code
    except dagger.DaggerError as exc:
        logger.error("image build failed: %s", exc)
        return 1
    print(ref)
    return 0


if __name__ == "__main__":
    sys.exit(main())
