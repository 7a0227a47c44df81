from pydantic import BaseModel


class Pagination(BaseModel):
    total_items: int
    current_page: int
    total_pages: int
    limit: int

