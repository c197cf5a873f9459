import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.responses import PlainTextResponse

from menswear_ops.config import settings
from menswear_ops.db import SessionLocal
from menswear_ops.routers import analytics, inventory, orders, weddings
from menswear_ops.services.change_feed import ChangeFeed
from menswear_ops.services.order_board_service import OrderBoard
from menswear_ops.services.sql_repository import SqlOrderRepository

logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format='%(asctime)s %(levelname)s %(name)s: %(message)s',
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    board: OrderBoard = app.state.order_board
    db = SessionLocal()
    try:
        board.load(SqlOrderRepository(db, app.state.change_feed))
    finally:
        db.close()
    board.start()
    logger.info('Order board loaded with %d orders', len(board.orders.rows))

    yield

    board.stop()


app = FastAPI(title='KCT Menswear Operations', lifespan=lifespan)
app.state.change_feed = ChangeFeed()
app.state.order_board = OrderBoard(app.state.change_feed)

app.include_router(inventory.router)
app.include_router(orders.router)
app.include_router(analytics.router)
app.include_router(weddings.router)


@app.get('/healthz', response_class=PlainTextResponse)
def healthz() -> str:
    return 'ok'
