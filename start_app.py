#!/usr/bin/env python
"""Start the freight rates service with the port taken from the environment."""
import os

import uvicorn

if __name__ == "__main__":
    port = int(os.environ.get("PORT", 8000))

    print(f"Starting freight rates service on port {port}")

    uvicorn.run(
        "freight_rates.main:app",
        host="0.0.0.0",
        port=port,
        log_level="info"
    )
