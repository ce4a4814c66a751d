"""
Top-level error boundary shared by every command.

Maps the outcome of a command body to a process exit code and one structured
log line:

    returns None / 0     -> 0
    returns int          -> that code
    OpsError             -> 1, COMMAND_FAILED, short message on stderr
    KeyboardInterrupt    -> 130, COMMAND_INTERRUPTED
    anything else        -> 1, COMMAND_CRASHED, traceback on stderr
"""
from typing import Callable, Optional

from backend_ops.cli_output import print_critical_error, print_failure
from backend_ops.exceptions import OpsError
from backend_ops.monitoring.logger import get_logger

logger = get_logger(__name__)

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_INTERRUPTED = 130


def run_entrypoint(command: str, body: Callable[[], Optional[int]]) -> int:
    try:
        code = body()
    except OpsError as e:
        logger.error("COMMAND_FAILED", command=command, error_type=type(e).__name__, error=str(e))
        print_failure(command, e)
        return EXIT_FAILURE
    except KeyboardInterrupt:
        logger.warning("COMMAND_INTERRUPTED", command=command)
        return EXIT_INTERRUPTED
    except Exception as e:
        logger.critical("COMMAND_CRASHED", command=command, error_type=type(e).__name__, error=str(e))
        print_critical_error(command, e)
        return EXIT_FAILURE

    code = EXIT_OK if code is None else int(code)
    logger.debug("COMMAND_FINISHED", command=command, exit_code=code)
    return code
