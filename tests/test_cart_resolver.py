from commerce_gateway.actions.cart_resolver import NEW_CART_ID, cart_schema, main
from tests.conftest import CallRecorder, type_fields


class TestCartSchema:
    def test_root_fields(self) -> None:
        schema = cart_schema()

        assert type_fields(schema, "Query") == ["cart"]
        assert type_fields(schema, "Mutation") == ["createEmptyCart"]

    def test_schema_is_built_once(self) -> None:
        assert cart_schema() is cart_schema()


class TestCartAction:
    async def test_cart_query(self, cart_calls: CallRecorder, product_calls: CallRecorder) -> None:
        result = await main(
            {
                "query": """
                query Cart($id: String!) {
                    cart(cart_id: $id) {
                        id
                        email
                        total_quantity
                        prices { grand_total { currency value } }
                        items { __typename uid quantity product { __typename sku name } }
                    }
                }
                """,
                "variables": {"id": "abcd"},
                "operationName": "Cart",
                "context": {"authorization": None},
                "url": "http://backend.test",
            }
        )

        assert "errors" not in result
        cart = result["data"]["cart"]
        assert cart["id"] == "abcd"
        assert cart["email"] == "dummy@example.com"
        assert cart["total_quantity"] == 3
        assert cart["prices"] == {"grand_total": {"currency": "USD", "value": 138.24}}
        assert cart["items"] == [
            {
                "__typename": "SimpleCartItem",
                "uid": "0",
                "quantity": 1,
                "product": {"__typename": "SimpleProduct", "sku": "product-1", "name": "Product #product-1"},
            },
            {
                "__typename": "SimpleCartItem",
                "uid": "1",
                "quantity": 2,
                "product": {"__typename": "SimpleProduct", "sku": "product-2", "name": "Product #product-2"},
            },
        ]
        assert cart_calls.calls == ["abcd"]
        assert sorted(product_calls.calls) == ["product-1", "product-2"]

    async def test_create_empty_cart(self) -> None:
        result = await main({"query": "mutation { createEmptyCart }"})
        assert result == {"data": {"createEmptyCart": NEW_CART_ID}}

    async def test_invalid_query(self) -> None:
        result = await main({"query": "{ products { total_count } }"})

        assert "data" not in result
        assert "products" in result["errors"][0]["message"]
