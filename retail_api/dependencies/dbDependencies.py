from fastapi import Depends
from sqlalchemy.orm import Session
from typing import Annotated
from retail_api.database.database import get_db

# Database session dependency for endpoints
db_dependency = Annotated[Session, Depends(get_db)]
