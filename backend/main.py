from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import HTMLResponse
from config import ENVIRONMENT, LOG_LEVEL, CURRENCY, DELIVERY_FEE
import logging

from routers.auth.auth import router as auth_router
from routers.users.users import router as users_router
from routers.materials.materials import router as materials_router
from routers.cart.cart import router as cart_router
from routers.orders.orders import router as orders_router
from routers.suppliers.suppliers import router as suppliers_router
from routers.location.location import router as location_router

logging.basicConfig(
    level=LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s"
)

IS_PRODUCTION = ENVIRONMENT == "prod"

TAGS_METADATA = [
    {"name": "Authentication", "description": "Supabase-backed sign up, login and token refresh"},
    {"name": "Users", "description": "The caller's own vendor or supplier profile"},
    {"name": "Materials", "description": "Raw-material catalog; suppliers manage their own listings"},
    {"name": "Cart", "description": "Vendor cart grouped by supplier"},
    {"name": "Orders", "description": "Order placement, fulfilment and cancellation with stock bookkeeping"},
    {"name": "Suppliers", "description": "Supplier directory and per-supplier catalogs"},
    {"name": "Location", "description": "Proximity search, delivery estimates and pincode checks"},
]

app = FastAPI(
    title="Indian Bazaar API",
    description="Raw-material marketplace connecting street-food vendors with local suppliers.",
    version="1.0.0",
    openapi_tags=TAGS_METADATA,
    root_path="/Prod" if IS_PRODUCTION else "",
    docs_url="/apidocs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
    servers=[
        {"url": "https://your-aws-api.execute-api.region.amazonaws.com/Prod", "description": "Production Server"},
        {"url": "http://localhost:8000", "description": "Local Development Server"},
    ],
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(auth_router)
app.include_router(users_router)
app.include_router(materials_router)
app.include_router(cart_router)
app.include_router(orders_router)
app.include_router(suppliers_router)
app.include_router(location_router)


@app.get("/health")
async def health_check():
    return {"status": "OK", "environment": ENVIRONMENT}


@app.get("/docs", include_in_schema=False)
async def api_documentation(request: Request):
    # Stoplight Elements needs the stage prefix behind API Gateway
    openapi_url = f"{request.scope.get('root_path', '')}/openapi.json"

    return HTMLResponse(
        f"""
<!doctype html>
<html lang="en">
  <head>
    <meta charset="utf-8">
    <title>Indian Bazaar API Reference</title>
    <script src="https://unpkg.com/@stoplight/elements/web-components.min.js"></script>
    <link rel="stylesheet" href="https://unpkg.com/@stoplight/elements/styles.min.css">
  </head>
  <body>
    <elements-api apiDescriptionUrl="{openapi_url}" router="hash" layout="sidebar" />
  </body>
</html>"""
    )


@app.get("/", response_class=HTMLResponse)
def home():
    """Landing page listing the marketplace sections"""
    sections = "".join(
        f"<li><b>{tag['name']}</b>: {tag['description']}</li>" for tag in TAGS_METADATA
    )
    return f"""
    <html>
      <head>
        <title>Indian Bazaar API</title>
        <style>
          body {{ font-family: Arial, sans-serif; margin: 40px; background-color: #fff8ef; }}
          h1 {{ color: #b34700; }}
          li {{ margin: 8px 0; }}
        </style>
      </head>
      <body>
        <h1>Indian Bazaar API</h1>
        <p>Prices in {CURRENCY}, flat delivery fee of {DELIVERY_FEE:.0f} per order.</p>
        <ul>{sections}</ul>
        <p>
          <a href="/docs">Stoplight</a> |
          <a href="/redoc">Redoc</a> |
          <a href="/apidocs">Swagger</a> |
          <a href="/openapi.json">OpenAPI</a>
        </p>
      </body>
    </html>
    """
