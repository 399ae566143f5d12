from .base import Base
from .restaurant import Restaurant
from .table import DiningTable
from .menu.menu_category import MenuCategory
from .menu.menu_item import MenuItem, MenuItemVariant
from .menu.addon import AddOnGroup, AddOn, MenuItemAddOnGroup, VariantAddOnGroup
from .order import Order, OrderItem, OrderItemAddOn, OrderStatus, OrderType
