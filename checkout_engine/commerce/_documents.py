"""GraphQL documents sent to the commerce backend."""

CART_FIELDS = """
  contents {
    nodes {
      key
      quantity
      total
      product { node { databaseId } }
      variation { node { databaseId } }
    }
  }
  subtotal
  total
  isEmpty
"""

SESSION_PING = """
query SessionPing {
  cart { isEmpty }
}
"""

GET_CART = f"""
query GetCart {{
  cart {{ {CART_FIELDS} }}
}}
"""

ADD_TO_CART = f"""
mutation AddToCart($input: AddToCartInput!) {{
  addToCart(input: $input) {{
    cart {{ {CART_FIELDS} }}
  }}
}}
"""

UPDATE_CART_ITEM = f"""
mutation UpdateCartItem($input: UpdateItemQuantitiesInput!) {{
  updateItemQuantities(input: $input) {{
    cart {{ {CART_FIELDS} }}
  }}
}}
"""

REMOVE_FROM_CART = f"""
mutation RemoveFromCart($input: RemoveItemsFromCartInput!) {{
  removeItemsFromCart(input: $input) {{
    cart {{ {CART_FIELDS} }}
  }}
}}
"""

PLACE_ORDER = """
mutation PlaceOrder($input: CheckoutInput!) {
  checkout(input: $input) {
    order {
      id
      orderNumber
      total
      shippingTotal
      status
    }
  }
}
"""

__all__ = (
    "SESSION_PING",
    "GET_CART",
    "ADD_TO_CART",
    "UPDATE_CART_ITEM",
    "REMOVE_FROM_CART",
    "PLACE_ORDER",
)
