from pathlib import Path
import sys
import traceback

from fastapi import FastAPI
import uvicorn

# Resolve project root (two levels up from this file: hextactics/main.py -> project root)
PROJECT_ROOT = Path(__file__).resolve().parent.parent
# Ensure project root on sys.path so `import hextactics.*` works when running as a script
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

app = FastAPI(title="hex-tactics")


# Health check
@app.get("/healthz")
def healthz():
    return {"status": "ok"}

try:
    from hextactics.routers.match_router import router as match_router
    app.include_router(match_router, prefix="/v1/match", tags=["match"])
except Exception as e:
    print(f"Failed to load Match router: {e}")
    traceback.print_exc()


if __name__ == "__main__":
    uvicorn.run(app, host="0.0.0.0", port=8000)
