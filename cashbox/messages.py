"""User-facing messages (Arabic, as shown in the dashboard)."""

INVALID_CREDENTIALS = "اسم المستخدم أو كلمة المرور غير صحيحة"
LOGIN_REQUIRED = "يجب تسجيل الدخول أولاً"
ADMIN_ONLY = "هذه العملية متاحة للمدير فقط"

AMOUNT_REQUIRED = "يرجى إدخال المبلغ"
AMOUNT_NOT_NUMERIC = "المبلغ يجب أن يكون رقماً"
AMOUNT_NOT_POSITIVE = "المبلغ يجب أن يكون أكبر من صفر"
AMOUNT_TOO_LARGE = "المبلغ يتجاوز الحد الأقصى المسموح"
CATEGORY_MISMATCH = "التصنيف غير متاح لهذا النوع من العمليات"
INVALID_TRANSACTION = "بيانات العملية غير صالحة"

TRANSACTION_NOT_FOUND = "العملية غير موجودة"
INVALID_STATUS_TARGET = "لا يمكن إرجاع العملية إلى حالة الانتظار"
ALREADY_REVIEWED = "تمت مراجعة هذه العملية مسبقاً"

USER_NOT_FOUND = "المستخدم غير موجود"
USERNAME_TAKEN = "اسم المستخدم مستخدم بالفعل"
SELF_DELETE = "لا يمكنك حذف حسابك الحالي"

BACKEND_UNAVAILABLE = "تعذر الوصول إلى قاعدة البيانات"
VALUES_REJECTED = "رفضت قاعدة البيانات القيم المدخلة"
SAVED_LOCALLY = "تم الحفظ محلياً وستتم المزامنة مع قاعدة البيانات لاحقاً"
LOADED_FROM_LOCAL = "تعذر الاتصال بقاعدة البيانات، يتم عرض البيانات المحلية"

AI_KEY_MISSING = "لا يمكن إجراء التحليل: مفتاح Gemini API غير موجود في المتغيرات البيئية."
AI_EMPTY_RESPONSE = "عذراً، لم يتمكن النظام من تحليل البيانات حالياً."
AI_REQUEST_FAILED = "حدث خطأ أثناء محاولة الحصول على تحليل الذكاء الاصطناعي. يرجى التحقق من صلاحية مفتاح API."
