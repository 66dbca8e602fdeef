import logging
import os

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger("entrypoint")


def main() -> None:
  """Launch the API under uvicorn on the platform-provided port."""
  port = os.getenv("PORT", "8080")
  logger.info("Starting schoolgen on port %s...", port)
  # Replace the current process so uvicorn receives SIGTERM directly.
  args = ["uvicorn", "schoolgen.main:app", "--host", "0.0.0.0", "--port", port, "--no-server-header", "--proxy-headers"]
  os.execvp("uvicorn", args)


if __name__ == "__main__":
  main()
