from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from mangum import Mangum
from api import routers
from core.logging_config import configure_logging

configure_logging()

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "GET, POST, PUT, DELETE, OPTIONS, PATCH",
    "Access-Control-Allow-Headers": "Content-Type, Authorization, X-Amz-Date, X-Api-Key, X-Amz-Security-Token",
    "Access-Control-Allow-Credentials": "true",
}

app = FastAPI(
    title="UniFund API",
    root_path="/Prod"
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["*"],
)

# API Gateway answers preflight requests through the app
@app.options("/{full_path:path}")
async def options_handler(request: Request, full_path: str):
    return JSONResponse(content={}, headers=CORS_HEADERS)

@app.get("/")
def read_root():
    return {"message": "Welcome to the UniFund API"}


app.include_router(routers.router)

handler = Mangum(app)
