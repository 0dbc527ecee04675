"""
发票计算 - 纯函数，发票按需生成，不持久化

grand_total = max(0, total - discount) * (1 + GST 税率，若含税)
balance_due = grand_total - paid_amount（为负表示多付，视为已结清）
"""
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, List, Optional

GST_RATE = Decimal("0.12")
ZERO = Decimal("0")
CENT = Decimal("0.01")


def to_decimal(value: Any) -> Decimal:
    """将金额统一转换为 Decimal（float 经 str 转换以免引入二进制误差）"""
    if value is None:
        return ZERO
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def to_money(value: Any) -> Decimal:
    """金额输入统一到分（四舍五入），与 Numeric(12, 2) 列的存储精度一致"""
    return to_decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


@dataclass
class InvoiceLineItem:
    description: str
    amount: Decimal


@dataclass
class Invoice:
    """
    发票快照

    Attributes:
        booking_id: 预订ID
        generated_at: 生成时间
        line_items: 明细行（房费、折扣、税）
        total: 税前房费
        discount: 折扣
        tax: 税额
        grand_total: 应收合计
        balance_due: 待付余额
    """

    booking_id: Optional[int]
    generated_at: datetime
    line_items: List[InvoiceLineItem] = field(default_factory=list)
    total: Decimal = ZERO
    discount: Decimal = ZERO
    tax: Decimal = ZERO
    grand_total: Decimal = ZERO
    balance_due: Decimal = ZERO

    @property
    def is_settled(self) -> bool:
        return self.balance_due <= ZERO


def generate_invoice(booking) -> Invoice:
    """根据预订的财务字段生成发票"""
    room_charge = to_decimal(booking.total_amount)
    discount = to_decimal(booking.discount)
    taxable = max(ZERO, room_charge - discount)
    tax = taxable * GST_RATE if booking.gst_included else ZERO
    grand_total = taxable + tax

    items = [InvoiceLineItem(
        description=f"Room Charges ({'AC' if booking.booked_as_ac else 'Non-AC'})",
        amount=room_charge,
    )]
    if discount > ZERO:
        items.append(InvoiceLineItem(description="Discount Applied", amount=-discount))
    if booking.gst_included:
        items.append(InvoiceLineItem(description=f"GST ({int(GST_RATE * 100)}%)", amount=tax))

    return Invoice(
        booking_id=getattr(booking, "id", None),
        generated_at=datetime.utcnow(),
        line_items=items,
        total=room_charge,
        discount=discount,
        tax=tax,
        grand_total=grand_total,
        balance_due=grand_total - to_decimal(booking.paid_amount),
    )


def quote_room_charge(room, check_in_date: date, check_out_date: date, booked_as_ac: bool) -> Decimal:
    """
    按房价计算税前房费：晚数 x (空调价 或 普通价)

    Raises:
        ValueError: 日期非法，或对不支持空调的房间选择了空调
    """
    nights = (check_out_date - check_in_date).days
    if nights <= 0:
        raise ValueError("离店日期必须晚于入住日期")

    if booked_as_ac:
        if room.ac_price is None:
            raise ValueError(f"房间 {room.number} 不支持空调")
        rate = to_decimal(room.ac_price)
    else:
        rate = to_decimal(room.price)

    return to_money(rate * nights)
