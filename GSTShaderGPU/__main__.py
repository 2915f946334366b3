"""
GSTShaderGPU/__main__.py
Command-line entry point.
"""
import sys


def _configure_stdio_safely() -> None:
    """Avoid crashes when stdout/stderr cannot encode some log characters."""
    for stream in (sys.stdout, sys.stderr):
        if hasattr(stream, "reconfigure"):
            try:
                stream.reconfigure(errors="backslashreplace", line_buffering=True, write_through=True)
            except (OSError, ValueError):
                pass


def main() -> None:
    _configure_stdio_safely()

    from .cli.shade_cli import ShadeCLI
    cli = ShadeCLI()

    try:
        status = cli.run()
    except KeyboardInterrupt:
        print("\nInterrupted")
        sys.exit(1)
    except Exception as e:
        print(f"Execution failed: {e}")
        sys.exit(1)
    sys.exit(status)


if __name__ == "__main__":
    main()
