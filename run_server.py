import uvicorn

from jarvis.config import AppConfig

if __name__ == "__main__":
    config = AppConfig.from_env()

    print(f"Starting Jarvis API on port {config.port}...")
    print(f"Docs available at: http://localhost:{config.port}/docs")

    uvicorn.run(
        "jarvis.api.server:app",
        host=config.host,
        port=config.port,
        log_level=config.log_level.lower()
    )
