"""Localized message catalog for API responses (zh / en / es)."""

from typing import Dict, Literal

SupportedLanguage = Literal["zh", "en", "es"]

SUPPORTED_LANGUAGES: tuple[str, ...] = ("zh", "en", "es")
DEFAULT_LANGUAGE = "es"  # Primary market

MESSAGES: Dict[str, Dict[str, str]] = {
    "zh": {
        # Authentication & Authorization
        "UNAUTHORIZED": "未授权访问",
        "FORBIDDEN": "禁止访问",
        "PLEASE_LOGIN": "请先登录",
        "ADMIN_REQUIRED": "需要管理员权限",
        "NOT_ORDER_PARTY": "无权操作此订单",
        "NOT_CONVERSATION_PARTICIPANT": "您不是该会话的参与者",
        "INVALID_WEBHOOK_SIGNATURE": "无效的回调签名",

        # Validation
        "MISSING_FIELDS": "缺少必要字段",
        "INVALID_DATA": "数据格式无效",
        "INVALID_USER_IDS": "无效的用户ID",
        "INVALID_RESPONSE_TYPE": "无效的响应类型",
        "INVALID_NEGOTIATION_FORMAT": "无效的议价消息格式",
        "INVALID_STATUS": "无效的状态",
        "INVALID_CATEGORY": "无效的分类",
        "INVALID_ORDER_TYPE": "无效的交易方式",
        "INVALID_PAYMENT_METHOD": "无效的支付方式",
        "INVALID_PRICE": "价格无效",

        # Resources
        "NOT_FOUND": "资源不存在",
        "PRODUCT_NOT_FOUND": "商品未找到",
        "USER_NOT_FOUND": "用户未找到",
        "ORDER_NOT_FOUND": "订单不存在",
        "MESSAGE_NOT_FOUND": "消息不存在",
        "CONVERSATION_NOT_FOUND": "会话不存在",

        # Product & Image
        "IMAGE_REQUIRED": "需要上传图片",
        "TITLE_PRICE_REQUIRED": "标题和价格为必填项",
        "PRODUCT_NOT_AVAILABLE": "商品当前不可购买",

        # Orders
        "CANNOT_BUY_OWN_PRODUCT": "不能购买自己的商品",
        "SHIPPING_ADDRESS_REQUIRED": "物流交易需要收货地址",
        "MEETUP_ONLY": "仅当面交易可以约定见面",
        "SHIPPING_ONLY": "仅物流交易可以发货",
        "ONLY_SELLER_CAN_SHIP": "只有卖家可以发货",
        "INVALID_ORDER_TRANSITION": "当前订单状态不允许此操作",
        "ORDER_ALREADY_FINAL": "订单已结束",
        "ORDER_NOT_COMPLETED": "订单完成后才能评价",
        "INVALID_RATING_SCORE": "评分必须是1到5之间的整数",

        # Business Logic
        "CANNOT_OFFER_OWN_PRODUCT": "卖家不能对自己的产品议价",
        "ONLY_SELLER_CAN_RESPOND": "只有卖家可以响应议价",
        "MESSAGE_TEXT_REQUIRED": "消息内容不能为空",

        # Generic
        "SERVER_ERROR": "服务器错误",
        "OPERATION_FAILED": "操作失败",

        # AI Service
        "AI_NOT_CONFIGURED": "AI 服务未配置",
        "AI_EMPTY_RESPONSE": "AI 服务未返回内容",
        "AI_MALFORMED_RESPONSE": "AI 服务返回格式错误",
        "FAILED_TO_ANALYZE_IMAGE": "图片分析失败",
    },
    "en": {
        # Authentication & Authorization
        "UNAUTHORIZED": "Unauthorized",
        "FORBIDDEN": "Forbidden",
        "PLEASE_LOGIN": "Please log in first",
        "ADMIN_REQUIRED": "Admin privileges required",
        "NOT_ORDER_PARTY": "You are not allowed to act on this order",
        "NOT_CONVERSATION_PARTICIPANT": "You are not a participant in this conversation",
        "INVALID_WEBHOOK_SIGNATURE": "Invalid webhook signature",

        # Validation
        "MISSING_FIELDS": "Missing required fields",
        "INVALID_DATA": "Invalid data format",
        "INVALID_USER_IDS": "Invalid user IDs",
        "INVALID_RESPONSE_TYPE": "Invalid response type",
        "INVALID_NEGOTIATION_FORMAT": "Invalid negotiation message format",
        "INVALID_STATUS": "Invalid status",
        "INVALID_CATEGORY": "Invalid category",
        "INVALID_ORDER_TYPE": "Invalid order type",
        "INVALID_PAYMENT_METHOD": "Invalid payment method",
        "INVALID_PRICE": "Invalid price",

        # Resources
        "NOT_FOUND": "Not found",
        "PRODUCT_NOT_FOUND": "Product not found",
        "USER_NOT_FOUND": "User not found",
        "ORDER_NOT_FOUND": "Order not found",
        "MESSAGE_NOT_FOUND": "Message not found",
        "CONVERSATION_NOT_FOUND": "Conversation not found",

        # Product & Image
        "IMAGE_REQUIRED": "Image data is required",
        "TITLE_PRICE_REQUIRED": "Title and price are required",
        "PRODUCT_NOT_AVAILABLE": "Product is not available for purchase",

        # Orders
        "CANNOT_BUY_OWN_PRODUCT": "You cannot buy your own product",
        "SHIPPING_ADDRESS_REQUIRED": "A shipping address is required for shipping orders",
        "MEETUP_ONLY": "Only meetup orders can arrange a meetup",
        "SHIPPING_ONLY": "Only shipping orders can be shipped",
        "ONLY_SELLER_CAN_SHIP": "Only the seller can mark an order as shipped",
        "INVALID_ORDER_TRANSITION": "This action is not allowed in the current order status",
        "ORDER_ALREADY_FINAL": "The order is already closed",
        "ORDER_NOT_COMPLETED": "Only completed orders can be rated",
        "INVALID_RATING_SCORE": "The score must be a whole number from 1 to 5",

        # Business Logic
        "CANNOT_OFFER_OWN_PRODUCT": "Sellers cannot make offers on their own products",
        "ONLY_SELLER_CAN_RESPOND": "Only the seller can respond to offers",
        "MESSAGE_TEXT_REQUIRED": "Message text is required",

        # Generic
        "SERVER_ERROR": "Server error",
        "OPERATION_FAILED": "Operation failed",

        # AI Service
        "AI_NOT_CONFIGURED": "AI service not configured",
        "AI_EMPTY_RESPONSE": "AI service returned no content",
        "AI_MALFORMED_RESPONSE": "AI service returned a malformed response",
        "FAILED_TO_ANALYZE_IMAGE": "Failed to analyze image",
    },
    "es": {
        # Authentication & Authorization
        "UNAUTHORIZED": "No autorizado",
        "FORBIDDEN": "Prohibido",
        "PLEASE_LOGIN": "Por favor inicia sesión primero",
        "ADMIN_REQUIRED": "Se requieren privilegios de administrador",
        "NOT_ORDER_PARTY": "No tienes permiso para operar este pedido",
        "NOT_CONVERSATION_PARTICIPANT": "No participas en esta conversación",
        "INVALID_WEBHOOK_SIGNATURE": "Firma de webhook inválida",

        # Validation
        "MISSING_FIELDS": "Faltan campos requeridos",
        "INVALID_DATA": "Formato de datos inválido",
        "INVALID_USER_IDS": "IDs de usuario inválidos",
        "INVALID_RESPONSE_TYPE": "Tipo de respuesta inválido",
        "INVALID_NEGOTIATION_FORMAT": "Formato de mensaje de oferta inválido",
        "INVALID_STATUS": "Estado inválido",
        "INVALID_CATEGORY": "Categoría inválida",
        "INVALID_ORDER_TYPE": "Tipo de entrega inválido",
        "INVALID_PAYMENT_METHOD": "Método de pago inválido",
        "INVALID_PRICE": "Precio inválido",

        # Resources
        "NOT_FOUND": "No encontrado",
        "PRODUCT_NOT_FOUND": "Producto no encontrado",
        "USER_NOT_FOUND": "Usuario no encontrado",
        "ORDER_NOT_FOUND": "Pedido no encontrado",
        "MESSAGE_NOT_FOUND": "Mensaje no encontrado",
        "CONVERSATION_NOT_FOUND": "Conversación no encontrada",

        # Product & Image
        "IMAGE_REQUIRED": "Se requieren datos de imagen",
        "TITLE_PRICE_REQUIRED": "El título y el precio son obligatorios",
        "PRODUCT_NOT_AVAILABLE": "El producto no está disponible",

        # Orders
        "CANNOT_BUY_OWN_PRODUCT": "No puedes comprar tu propio producto",
        "SHIPPING_ADDRESS_REQUIRED": "Se requiere una dirección de envío",
        "MEETUP_ONLY": "Solo los pedidos en persona pueden acordar una cita",
        "SHIPPING_ONLY": "Solo los pedidos con envío pueden marcarse como enviados",
        "ONLY_SELLER_CAN_SHIP": "Solo el vendedor puede marcar el pedido como enviado",
        "INVALID_ORDER_TRANSITION": "Esta acción no está permitida en el estado actual del pedido",
        "ORDER_ALREADY_FINAL": "El pedido ya está cerrado",
        "ORDER_NOT_COMPLETED": "Solo se pueden calificar pedidos completados",
        "INVALID_RATING_SCORE": "La calificación debe ser un número entero del 1 al 5",

        # Business Logic
        "CANNOT_OFFER_OWN_PRODUCT": "Los vendedores no pueden ofertar en sus propios productos",
        "ONLY_SELLER_CAN_RESPOND": "Solo el vendedor puede responder a ofertas",
        "MESSAGE_TEXT_REQUIRED": "El texto del mensaje es obligatorio",

        # Generic
        "SERVER_ERROR": "Error del servidor",
        "OPERATION_FAILED": "Operación fallida",

        # AI Service
        "AI_NOT_CONFIGURED": "Servicio de IA no configurado",
        "AI_EMPTY_RESPONSE": "El servicio de IA no devolvió contenido",
        "AI_MALFORMED_RESPONSE": "El servicio de IA devolvió una respuesta inválida",
        "FAILED_TO_ANALYZE_IMAGE": "Error al analizar imagen",
    },
}
