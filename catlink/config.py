# catlink/config.py
import os
import logging
from pathlib import Path
from dotenv import load_dotenv

# Load environment variables
load_dotenv()

# Base directory of the project
BASE_DIR = Path(__file__).resolve().parent.parent

class Config:
    """Configuration settings for the deduction engine"""
    
    # Database settings
    DATABASE_URL: str = os.getenv("DATABASE_URL", "")
    DB_POOL_MIN_SIZE: int = int(os.getenv("DB_POOL_MIN_SIZE", "2"))
    DB_POOL_MAX_SIZE: int = int(os.getenv("DB_POOL_MAX_SIZE", "10"))
    
    # Link graph limits
    MAX_DEPENDENCY_DEPTH: int = int(os.getenv("MAX_DEPENDENCY_DEPTH", "100"))
    DEEP_CHAIN_WARNING: int = int(os.getenv("DEEP_CHAIN_WARNING", "5"))
    DEPENDENCY_CHAIN_MAX_DEPTH: int = int(os.getenv("DEPENDENCY_CHAIN_MAX_DEPTH", "10"))
    LINK_COUNT_WARNING: int = int(os.getenv("LINK_COUNT_WARNING", "50"))
    VALIDATION_TIME_WARNING_MS: int = int(os.getenv("VALIDATION_TIME_WARNING_MS", "500"))
    
    # Seconds to wait on a single storage call during order processing
    COLLABORATOR_TIMEOUT: float = float(os.getenv("COLLABORATOR_TIMEOUT", "10"))
    
    # Other settings
    TIMEZONE: str = os.getenv("TZ", "UTC")
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")
    
    # Paths
    LOG_DIR = Path(os.getenv("LOG_DIR", str(BASE_DIR / "logs")))

def setup_logging():
    """Configure logging settings"""
    log_format = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    Config.LOG_DIR.mkdir(parents=True, exist_ok=True)
    log_file = Config.LOG_DIR / "catlink.log"
    
    logging.basicConfig(
        level=getattr(logging, Config.LOG_LEVEL),
        format=log_format,
        handlers=[
            logging.FileHandler(log_file),
            logging.StreamHandler()
        ]
    )
