# main.py
from dotenv import load_dotenv
load_dotenv()

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from starlette.middleware.trustedhost import TrustedHostMiddleware

from helpers.tortoise_config import lifespan

# ----- Routers / controllers -----
from controllers import twilio_controller
from controllers.vapi_server_url import router as vapi_server_url

app = FastAPI(lifespan=lifespan)

# ----- Middlewares -----
app.add_middleware(TrustedHostMiddleware, allowed_hosts=["*"])
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*", "http://localhost:5173"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# ----- Routers -----
app.include_router(vapi_server_url, prefix="/api", tags=["Vapi Webhooks"])
app.include_router(twilio_controller.router, prefix="/api", tags=["Twilio Webhooks"])


# ----- Root -----
@app.get("/")
def greetings():
    return {"Message": "AI receptionist webhooks are up :)"}
