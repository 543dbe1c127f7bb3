from pydantic import BaseModel

# Largest value an INTEGER primary key column can hold
MAX_ID = 2_147_483_647


class PageMeta(BaseModel):
    current_page: int
    total_page: int
    per_page: int
    total: int
