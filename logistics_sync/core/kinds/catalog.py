"""
Built-in record kinds of the logistics import backend.

Each kind maps the Russian-language header labels of its production extract
onto logical fields. Every kind checks the client taxpayer number against the
clients reference table.
"""

from typing import Any

from logistics_sync.core.models import FieldSpec, FieldType, RecordKind

NOT_SPECIFIED = "Не указан"

# Run order of a full cycle
DEFAULT_RUN_ORDER = [
    "complaints",
    "finance",
    "analytics",
    "analytic_orders",
    "orders",
    "registry",
    "stock",
]


def _field(name: str, *labels: str, field_type: FieldType = FieldType.TEXT, **options: Any) -> FieldSpec:
    return FieldSpec(name=name, labels=list(labels), field_type=field_type, **options)


def _branch() -> FieldSpec:
    return _field("branch", "Филиал", "Branch")


def _client_tin() -> FieldSpec:
    return _field("client_tin", "ИНН", "ИНН клиента", "TIN", field_type=FieldType.IDENTIFIER)


def _count(name: str, *labels: str) -> FieldSpec:
    return _field(name, *labels, field_type=FieldType.INTEGER, required=False, default=0)


ORDERS = RecordKind(
    name="orders",
    table="orders",
    file_name="orders.csv",
    fields=[
        _branch(),
        _field("order_type", "Тип заказа"),
        _field("order_number", "Номер заказа"),
        _field("kis_number", "Номер заказа КИС", required=False),
        _field("export_date", "Дата выгрузки заказа", field_type=FieldType.DATE,
               required=False, default_now=True),
        _field("shipment_date", "Плановая дата отгрузки", field_type=FieldType.DATE, required=False),
        _field("status", "Статус"),
        _count("packages_planned", "КоличествоУпаковокПлан"),
        _count("packages_actual", "КоличествоУпаковокФакт"),
        _count("lines_planned", "КоличествоСтрокПлан"),
        _count("lines_actual", "КоличествоСтрокФакт"),
        _field("counterparty", "Контрагент", required=False, default=NOT_SPECIFIED),
        _field("acceptance_date", "Дата приемки/отгрузки", field_type=FieldType.DATE, required=False),
        _client_tin(),
        _field("client", "Клиент", required=False),
    ],
    key_fields=["branch", "order_type", "order_number", "client_tin"],
    reference_field="client_tin",
    window_fields=["export_date", "shipment_date", "acceptance_date"],
)

REGISTRY = RecordKind(
    name="registry",
    table="registry",
    file_name="registry.csv",
    fields=[
        _branch(),
        _field("counterparty", "Контрагент", required=False, default=NOT_SPECIFIED),
        _client_tin(),
        _field("vehicle_number", "Номер ТС", required=False),
        _field("order_type", "Тип прихода"),
        _field("order_number", "Номер заказа или маршрутного листа", "Номер заказа"),
        _field("driver_name", "ФИО водителя", required=False),
        _field("processing_type", "Тип Обработки", required=False),
        _field("acceptance_date", "Дата прибытия ТС по заявке", field_type=FieldType.DATE,
               required=False, default_now=True),
        _field("shipment_plan", "Дата планового прибытия ТС", field_type=FieldType.DATE,
               required=False, default_now=True),
        _field("unloading_date", "Дата фактического прибытия ТС", field_type=FieldType.DATE,
               required=False, default_now=True),
        _field("departure_date", "Дата убытия ТС", field_type=FieldType.DATE, required=False),
        _field("status", "Статус ТС", "Статус"),
    ],
    key_fields=["branch", "order_type", "order_number", "client_tin"],
    reference_field="client_tin",
)

FINANCE = RecordKind(
    name="finance",
    table="finance",
    file_name="finance.csv",
    fields=[
        _branch(),
        _field("counterparty", "Клиент", "Контрагент", required=False, default=NOT_SPECIFIED),
        _client_tin(),
        _field("date", "ДатаПоступления", "Дата поступления", "Дата", field_type=FieldType.DATE),
        _field("order_number", "КодПретензии", "Код претензии", "Номер заказа"),
        _field("amount", "СуммаПретензии", "Сумма претензии", "Сумма",
               field_type=FieldType.DECIMAL, required=False, default=0),
        _field("status", "Статус"),
        _field("comment", "Комментарий", "Комменатарий", required=False),
        _field("completion_date", "ДатаЗавершения", "Дата завершения", "Дата Завершения",
               "дата_завершения", "Дата_завершения", "дата завершения",
               field_type=FieldType.DATE, required=False),
        _field("closing_date", "ДатаЗакрытия", "Дата закрытия", "Дата Закрытия",
               "ПлановаяДатаЗакрытия", "Плановая Дата Закрытия", "Плановая дата закрытия",
               "дата_закрытия", "Дата_закрытия",
               field_type=FieldType.DATE, required=False),
    ],
    key_fields=["branch", "order_number", "client_tin", "date"],
    reference_field="client_tin",
)

COMPLAINTS = RecordKind(
    name="complaints",
    table="complaints",
    file_name="complaints.csv",
    fields=[
        _branch(),
        _field("client", "Клиент", required=False, default=NOT_SPECIFIED),
        _client_tin(),
        _field("creation_date", "ДатаСоздания", "Дата создания", field_type=FieldType.DATE),
        _field("complaint_number", "НомерРекламации", "Номер рекламации"),
        _field("complaint_type", "ТипПретензии", "Тип претензии", required=False, default=NOT_SPECIFIED),
        _field("status", "Статус"),
        _field("confirmation", "Подтверждение", field_type=FieldType.BOOLEAN, required=False),
    ],
    key_fields=["branch", "complaint_number", "client_tin", "creation_date"],
    reference_field="client_tin",
)

ANALYTICS = RecordKind(
    name="analytics",
    table="analytics",
    file_name="analytics.csv",
    fields=[
        _branch(),
        _field("client", "Клиент", required=False),
        _client_tin(),
        _field("date", "Дата", field_type=FieldType.DATE),
        _count("quantity_by_request", "КолвоПоЗаявке"),
        _count("quantity_by_plan", "КолвоПоПлану"),
        _count("quantity_by_fact", "КолвоПоФакту"),
        _count("quantity_by_departure", "КолвоПоУбытию"),
    ],
    key_fields=["branch", "client_tin", "date"],
    reference_field="client_tin",
    window_fields=["date"],
)

ANALYTIC_ORDERS = RecordKind(
    name="analytic_orders",
    table="analytic_orders",
    file_name="analytic_orders.csv",
    fields=[
        _branch(),
        _client_tin(),
        _field("date", "Дата", field_type=FieldType.DATE),
        _count("quantity_by_planned_date", "КолвоПоПлановойДате"),
        _count("quantity_by_actual_date", "КолвоПоФактическойДате"),
    ],
    key_fields=["branch", "client_tin", "date"],
    reference_field="client_tin",
    window_fields=["date"],
)

STOCK = RecordKind(
    name="stock",
    table="stock",
    file_name="stock.csv",
    fields=[
        _field("warehouse", "Склад"),
        _client_tin(),
        _field("nomenclature", "Наименование"),
        _field("article", "Артикул"),
        _field("quantity", "Колво", field_type=FieldType.INTEGER,
               required=False, default=0, min_value=0),
    ],
    key_fields=["warehouse", "client_tin", "article", "nomenclature"],
    reference_field="client_tin",
    compare_fields=["quantity"],
)

BUILTIN_KINDS: dict[str, RecordKind] = {
    kind.name: kind
    for kind in (COMPLAINTS, FINANCE, ANALYTICS, ANALYTIC_ORDERS, ORDERS, REGISTRY, STOCK)
}


def get_kind(name: str, kinds: dict[str, RecordKind] | None = None) -> RecordKind:
    """
    Look up a record kind by name.

    Args:
        name: Kind name
        kinds: Kind table to search (defaults to the built-in kinds)

    Raises:
        KeyError: If no kind has that name
    """
    table = kinds if kinds is not None else BUILTIN_KINDS
    if name not in table:
        raise KeyError(f"Unknown record kind '{name}'. Known kinds: {sorted(table)}")
    return table[name]
