"""
ORM models for the rental catalog and the host platform entities it references
(images, sales channels, regions, prices, shipping profiles, tax rates).

Importing this package ensures model classes are registered with the Base
metadata for Alembic and runtime usage.
"""

from .commerce import (  # noqa: F401
    Image,
    MoneyAmount,
    Region,
    SalesChannel,
    ShippingProfile,
    ShippingProfileType,
    TaxRate,
)
from .lookup import (  # noqa: F401
    RentalCollection,
    RentalTag,
    RentalType,
)
from .rental import (  # noqa: F401
    Rental,
    RentalStatus,
    discount_condition_rental,
    discount_condition_rental_collection,
    discount_condition_rental_tag,
    discount_condition_rental_type,
    rental_images,
    rental_sales_channel,
    rental_tags,
)
from .rental_option import (  # noqa: F401
    RentalOption,
    RentalOptionValue,
)
from .rental_variant import RentalVariant  # noqa: F401
from .tax import (  # noqa: F401
    RentalTaxRate,
    RentalTypeTaxRate,
)
