"""Run the checkout API with uvicorn on the configured host/port."""
import uvicorn

from storefront.settings import settings

if __name__ == "__main__":
    uvicorn.run("storefront.main:app", host=settings.api_host, port=settings.api_port)
