from sqlalchemy.orm import Session

from hcpos.errors import NotFoundError
from hcpos.models.core import Branch, Customer, MenuItem


class MenuCatalog:
    def __init__(self, db: Session):
        self.db = db

    def get(self, menu_item_id: int) -> MenuItem:
        item = self.db.get(MenuItem, menu_item_id)
        if not item:
            raise NotFoundError(f"Menu item with ID {menu_item_id} not found")
        return item


class BranchDirectory:
    def __init__(self, db: Session):
        self.db = db

    def get(self, branch_id: int) -> Branch:
        branch = self.db.get(Branch, branch_id)
        if not branch:
            raise NotFoundError(f"Branch with ID {branch_id} not found")
        return branch


class CustomerDirectory:
    def __init__(self, db: Session):
        self.db = db

    def get(self, customer_id: int) -> Customer:
        customer = self.db.get(Customer, customer_id)
        if not customer:
            raise NotFoundError(f"Customer with ID {customer_id} not found")
        return customer
