"""
Module / Tab Catalog

Every (module, tab) pair the application knows about. The ledger
assembler scans exactly these pairs, in exactly this order; the order is
what decides how same-date entries line up in the statement.
"""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field


class ModuleType(str, Enum):
    """Functional area a module belongs to."""
    EXPORT = "export"
    INVENTORY = "inventory"
    READONLY = "readonly"
    FINANCIAL = "financial"
    RECEIVABLE = "receivable"
    PAYABLE = "payable"
    MIXED = "mixed"


class ModuleConfig(BaseModel):
    """A navigation module and its tabs."""

    id: str = Field(..., min_length=1)
    name: str
    type: ModuleType
    description: str = ""
    tabs: list[str] = Field(default_factory=list)

    def scannable_tabs(self) -> list[str]:
        """Tabs that may hold transactional data (dashboards never do)."""
        return [tab for tab in self.tabs if not is_dashboard_tab(tab)]


APP_MODULES: list[ModuleConfig] = [
    ModuleConfig(
        id="vg-exporting",
        name="VG Exporting",
        type=ModuleType.EXPORT,
        description="Export management & invoices",
        tabs=["Export", "Export -invoice"],
    ),
    ModuleConfig(
        id="vision-gems",
        name="Vision Gems SL",
        type=ModuleType.INVENTORY,
        description="Main company inventory",
        tabs=["DashboardGems", "veriety", "Approval", "Z", "V G Old stock", "Cut.polish"],
    ),
    ModuleConfig(
        id="in-stocks",
        name="In Stocks",
        type=ModuleType.INVENTORY,
        description="Global inventory availability",
        tabs=["Dashboard", "All Stones", "Sold"],
    ),
    ModuleConfig(
        id="spinel-gallery",
        name="SpinelGallery💎",
        type=ModuleType.READONLY,
        description="Secondary company (Read Only)",
        tabs=[
            "DashboardGEMS", "Mahenge", "Spinel", "Blue.Sapphire", "Cut.polish",
            "SL.Expenses", "BKkticket", "BKKExport", "BKKExpenses", "BKKHotel",
            "Purchasing", "Capital", "TExpenses", "Important",
        ],
    ),
    ModuleConfig(
        id="all-expenses",
        name="AllExpenses",
        type=ModuleType.FINANCIAL,
        description="Comprehensive expense tracking",
        tabs=[
            "ExDashboard", "VGExpenses", "Cut.polish", "Personal Expenses",
            "Ticket and Visa", "Office", "Expenses",
        ],
    ),
    ModuleConfig(
        id="outstanding",
        name="Outstanding",
        type=ModuleType.RECEIVABLE,
        description="Accounts receivable",
        tabs=[
            "Dashboard", "Payment Received", "Srilanka Sales",
            "Outstanding Receivables", "BangkokSales", "ChinaSales",
        ],
    ),
    ModuleConfig(
        id="payable",
        name="Payable",
        type=ModuleType.PAYABLE,
        description="Accounts payable",
        tabs=[
            "Dashboard", "Payment Due Date", "Buying.Payments.Paid", "Capital", "BKK.Capital",
            "Beruwala", "Colombo", "Galle", "Kisu", "Bangkok",
        ],
    ),
    ModuleConfig(
        id="bkk",
        name="BKK Operations",
        type=ModuleType.FINANCIAL,
        description="Bangkok operations & finance",
        tabs=[
            "Dashboard", "BKK", "BKKTickets", "BkkExpenses", "Export.Charge",
            "Apartment", "Bkkcapital", "BKK.Payment", "BKK.statement",
        ],
    ),
    ModuleConfig(
        id="kenya",
        name="Kenya",
        type=ModuleType.MIXED,
        description="Kenya Operations",
        tabs=[
            "KDashboard", "Instock", "CutPolish", "Export", "Traveling.EX", "BkkExpenses",
            "BkkHotel", "KPurchasing", "KExpenses", "Capital",
        ],
    ),
    ModuleConfig(
        id="vgtz",
        name="Mahenge (VGTZ)",
        type=ModuleType.MIXED,
        description="Tanzania Operations",
        tabs=[
            "VG.T Dashboard", "VG.T.Instock", "Purchase", "TZ.Expenses", "T.Capital",
            "Azeem", "T.export", "Cut.and.polish", "Tickets.visa", "SLExpenses",
        ],
    ),
    ModuleConfig(
        id="madagascar",
        name="Madagascar",
        type=ModuleType.MIXED,
        description="Madagascar Operations",
        tabs=[
            "MDashboard", "Instock", "MPurchasing", "MExpenses", "MCapital", "MExport",
            "Cut.polish", "Tickets.visa", "SLExpenses", "Invoice", "Invoice bkk",
        ],
    ),
    ModuleConfig(
        id="dada",
        name="Dada",
        type=ModuleType.MIXED,
        description="Dada Brand",
        tabs=[
            "Dashboard", "Instock", "Purchase", "T.Expense", "Capital", "T.export",
            "Tickets.visa", "202412Capital", "202412TExpense", "202412", "202412 (2)",
        ],
    ),
    ModuleConfig(
        id="vg-ramazan",
        name="VG Ramazan",
        type=ModuleType.MIXED,
        description="VG Ramazan Brand",
        tabs=[
            "VGRZ.Dashboard", "Instock", "VGR.purchase", "Cut.polish", "T.Expenses",
            "T.export", "T.Capital",
        ],
    ),
    ModuleConfig(
        id="accounts",
        name="Accounts",
        type=ModuleType.FINANCIAL,
        description="Accounts management",
        tabs=["Shares", "Investment"],
    ),
]

# Modules whose tabs a stone's free-text location is matched against
STONE_LOCATION_MODULE_IDS = {"vision-gems", "spinel-gallery"}


def is_dashboard_tab(tab_id: str) -> bool:
    return "dashboard" in tab_id.lower()


def get_module(
    module_id: str,
    modules: Optional[list[ModuleConfig]] = None,
) -> Optional[ModuleConfig]:
    for module in modules if modules is not None else APP_MODULES:
        if module.id == module_id:
            return module
    return None


def get_module_name(
    module_id: str,
    modules: Optional[list[ModuleConfig]] = None,
) -> str:
    """Display name of a module, or the id itself for unknown modules."""
    module = get_module(module_id, modules)
    return module.name if module else module_id


def stone_location_modules(
    modules: Optional[list[ModuleConfig]] = None,
) -> list[ModuleConfig]:
    """Inventory-like modules, in catalog order."""
    return [
        module
        for module in (modules if modules is not None else APP_MODULES)
        if module.type == ModuleType.INVENTORY or module.id in STONE_LOCATION_MODULE_IDS
    ]
