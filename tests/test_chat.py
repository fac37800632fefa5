"""Tests for conversations, messages and price negotiation."""

import json

import pytest

from bazaar.chat.service import ChatService, NegotiationService
from bazaar.errors import ForbiddenError, NotFoundError, ValidationError
from conftest import make_product


@pytest.mark.asyncio
async def test_conversation_pair_is_unordered(repos):
    product = await repos.products.add(make_product())
    chat = ChatService(repos)

    first = await chat.get_or_create_conversation(product.id, "buyer-1", "seller-1", "buyer-1")
    second = await chat.get_or_create_conversation(product.id, "seller-1", "buyer-1", "seller-1")

    assert first.id == second.id
    assert (first.buyer_id, first.seller_id) == ("buyer-1", "seller-1")


@pytest.mark.asyncio
async def test_conversation_validation(repos):
    product = await repos.products.add(make_product())
    chat = ChatService(repos)

    with pytest.raises(ValidationError) as exc:
        await chat.get_or_create_conversation(product.id, "buyer-1", "buyer-1", "buyer-1")
    assert exc.value.message_key == "INVALID_USER_IDS"

    with pytest.raises(ForbiddenError):
        await chat.get_or_create_conversation(product.id, "buyer-1", "seller-1", "stranger")

    with pytest.raises(ValidationError):
        await chat.get_or_create_conversation(product.id, "buyer-1", "buyer-2", "buyer-1")

    with pytest.raises(NotFoundError):
        await chat.get_or_create_conversation("missing", "buyer-1", "seller-1", "buyer-1")


@pytest.mark.asyncio
async def test_send_and_read_messages(repos):
    product = await repos.products.add(make_product())
    chat = ChatService(repos)
    conversation = await chat.get_or_create_conversation(product.id, "buyer-1", "seller-1", "buyer-1")

    sent = await chat.send_message(conversation.id, "buyer-1", "  ¿Sigue disponible?  ")
    assert sent.text == "¿Sigue disponible?"
    assert conversation.last_message_at == sent.created_at

    await chat.send_message(
        conversation.id, "buyer-1", message_type="location_share", content={"lat": 19.4, "lng": -99.1}
    )

    messages = await chat.get_messages(conversation.id, "seller-1")
    assert len(messages) == 2
    assert json.loads(messages[1].content) == {"lat": 19.4, "lng": -99.1}

    assert await chat.mark_read(conversation.id, "seller-1") == 2
    assert await chat.mark_read(conversation.id, "seller-1") == 0
    # Own messages are never marked read by the sender
    assert await chat.mark_read(conversation.id, "buyer-1") == 0


@pytest.mark.asyncio
async def test_send_message_rules(repos):
    product = await repos.products.add(make_product())
    chat = ChatService(repos)
    conversation = await chat.get_or_create_conversation(product.id, "buyer-1", "seller-1", "buyer-1")

    with pytest.raises(ValidationError) as exc:
        await chat.send_message(conversation.id, "buyer-1", "   ")
    assert exc.value.message_key == "MESSAGE_TEXT_REQUIRED"

    with pytest.raises(ValidationError):
        await chat.send_message(conversation.id, "buyer-1", "hi", message_type="order_status")

    with pytest.raises(ForbiddenError):
        await chat.send_message(conversation.id, "stranger", "hi")

    with pytest.raises(NotFoundError):
        await chat.get_messages("missing", "buyer-1")


# ---------------------------------------------------------------------------
# negotiation
# ---------------------------------------------------------------------------


async def _proposal(repos, price=800):
    product = await repos.products.add(make_product(price=1000))
    conversation = await ChatService(repos).get_or_create_conversation(
        product.id, "buyer-1", "seller-1", "buyer-1"
    )
    message = await NegotiationService(repos).propose(conversation.id, product.id, "buyer-1", price)
    return product, conversation, message


@pytest.mark.asyncio
async def test_propose(repos):
    product, conversation, message = await _proposal(repos)

    assert message.message_type == "price_negotiation"
    assert message.sender_id == "buyer-1"
    content = json.loads(message.content)
    assert content["event"] == "proposed"
    assert content["proposed_price"] == 800.0
    assert content["original_price"] == 1000.0
    assert content["seller_id"] == "seller-1"
    assert content["status"] == "pending"


@pytest.mark.asyncio
async def test_propose_validation(repos):
    product = await repos.products.add(make_product())
    conversation = await ChatService(repos).get_or_create_conversation(
        product.id, "buyer-1", "seller-1", "buyer-1"
    )
    negotiations = NegotiationService(repos)

    for price in (0, -5, "abc"):
        with pytest.raises(ValidationError) as exc:
            await negotiations.propose(conversation.id, product.id, "buyer-1", price)
        assert exc.value.message_key == "INVALID_PRICE"

    with pytest.raises(ValidationError) as exc:
        await negotiations.propose(conversation.id, product.id, "seller-1", 500)
    assert exc.value.message_key == "CANNOT_OFFER_OWN_PRODUCT"

    with pytest.raises(ForbiddenError):
        await negotiations.propose(conversation.id, product.id, "stranger", 500)

    with pytest.raises(NotFoundError):
        await negotiations.propose("missing", product.id, "buyer-1", 500)


@pytest.mark.asyncio
async def test_accept(repos):
    _, conversation, proposal = await _proposal(repos)

    reply, negotiation = await NegotiationService(repos).respond(proposal.id, "seller-1", "accepted")

    assert negotiation["status"] == "accepted"
    assert negotiation["responder_id"] == "seller-1"
    assert reply.message_type == "price_negotiation_response"
    assert reply.text == "The seller accepted your offer of $800.0!"
    assert json.loads(reply.content)["response_type"] == "accepted"
    assert json.loads(proposal.content)["status"] == "accepted"
    assert len(repos.messages.for_conversation(conversation.id)) == 2


@pytest.mark.asyncio
async def test_counter_offer(repos):
    _, _, proposal = await _proposal(repos)

    reply, negotiation = await NegotiationService(repos).respond(
        proposal.id, "seller-1", "counter", counter_price=900
    )

    assert negotiation["status"] == "counter"
    assert negotiation["counter_price"] == 900.0
    assert reply.text == "The seller countered with $900.0"


@pytest.mark.asyncio
async def test_respond_rules(repos):
    _, conversation, proposal = await _proposal(repos)
    negotiations = NegotiationService(repos)

    with pytest.raises(ForbiddenError) as exc:
        await negotiations.respond(proposal.id, "buyer-1", "accepted")
    assert exc.value.message_key == "ONLY_SELLER_CAN_RESPOND"

    with pytest.raises(ValidationError) as exc:
        await negotiations.respond(proposal.id, "seller-1", "maybe")
    assert exc.value.message_key == "INVALID_RESPONSE_TYPE"

    with pytest.raises(ValidationError) as exc:
        await negotiations.respond(proposal.id, "seller-1", "counter", counter_price=None)
    assert exc.value.message_key == "INVALID_PRICE"

    text = await ChatService(repos).send_message(conversation.id, "buyer-1", "hola")
    with pytest.raises(NotFoundError) as exc:
        await negotiations.respond(text.id, "seller-1", "accepted")
    assert exc.value.message_key == "MESSAGE_NOT_FOUND"

    # Nothing changed on the proposal
    assert json.loads(proposal.content)["status"] == "pending"


@pytest.mark.asyncio
async def test_corrupt_negotiation_content(repos):
    _, _, proposal = await _proposal(repos)
    proposal.content = "{not json"

    with pytest.raises(ValidationError) as exc:
        await NegotiationService(repos).respond(proposal.id, "seller-1", "rejected")
    assert exc.value.message_key == "INVALID_NEGOTIATION_FORMAT"
