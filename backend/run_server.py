import sys
import os
import uvicorn

# Add current directory to sys.path
sys.path.append(os.path.dirname(os.path.abspath(__file__)))

if __name__ == "__main__":
    port = int(os.environ.get("PORT", "8000"))
    print(f"Starting uvicorn server on port {port}...")
    uvicorn.run("studygroup.main:app", host="0.0.0.0", port=port, reload=False)
