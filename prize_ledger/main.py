import os

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from prize_ledger.db import engine, Base

from prize_ledger.models.campaign import Campaign
from prize_ledger.models.prize_slot import PrizeSlot
from prize_ledger.models.spin_result import SpinResult

from prize_ledger.routes.campaigns import router as campaigns_router
from prize_ledger.routes.slots import router as slots_router
from prize_ledger.routes.spin_results import router as spin_results_router

DEFAULT_CORS_ORIGINS = [
    "http://localhost:3000",
    "https://localhost:3000",
    "http://127.0.0.1:3000",
    "https://127.0.0.1:3000",
]

app = FastAPI(title="Prize Ledger")

# ─── CORS ─────────────────────────────────────────────────────────
cors_origins = [o.strip() for o in (os.getenv("CORS_ORIGINS") or "").split(",") if o.strip()]
app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins or DEFAULT_CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.on_event("startup")
def startup():
    Base.metadata.create_all(bind=engine)


app.include_router(campaigns_router)
app.include_router(slots_router)
app.include_router(spin_results_router)


@app.get("/")
def read_root():
    return {"message": "Prize Ledger is running"}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="127.0.0.1", port=8001)
