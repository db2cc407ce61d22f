import sys
import logging
from collections.abc import Sequence

from base import ProvisionEnv, protoc_spec, setup_logging
from errors import BuildToolError, ConfigError
from provision import Provisioner

logger = logging.getLogger("protoc")


def main(argv: Sequence[str] | None = None, *, provisioner: Provisioner | None = None) -> int:
    args = list(sys.argv[1:] if argv is None else argv)
    try:
        env = ProvisionEnv.from_environ()
    except ConfigError as exc:
        setup_logging("WARNING")
        logger.error("%s", exc)
        return exc.exit_code
    setup_logging(env.log_level)

    if provisioner is None:
        provisioner = Provisioner(
            protoc_spec(),
            env.cache_dir,
            http_timeout=env.http_timeout,
        )
    try:
        return provisioner.run(args)
    except BuildToolError as exc:
        logger.error("%s", exc)
        return exc.exit_code


if __name__ == "__main__":
    sys.exit(main())
