from .user import User
from .watchlist import Watchlist, WatchlistItem
from .portfolio import Portfolio, PortfolioTransaction, TransactionType
from .price import Ticker, DailyPrice
from .stock_analysis import StockAnalysis
