import sys
import os
import streamlit as st

sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from siggil.async_ops import (
    load_featured_products,
    load_home_categories,
    refresh_admin_dashboard,
    run_sync,
)
from siggil.domain import ALL_CATEGORIES, ORDER_STATUSES, PAYMENT_METHODS, BuyerInfo, CartLine
from siggil.lazy import iter_orders_by_status
from siggil.schemas import BuyerInfoPayload, CategoryCreate, ProductCreate
from siggil.session import open_session
from siggil.validation import DEFAULT_CATEGORIES, VALID_COLORS, VALID_SIZES, validate_checkout


# ============ Сессия ============
st.set_page_config(
    page_title="SIGGIL",
    page_icon="🛍️",
    layout="wide",
    initial_sidebar_state="expanded",
)

if "shop" not in st.session_state:
    st.session_state.shop = open_session()
    run_sync(st.session_state.shop.catalog.load_products())

shop = st.session_state.shop


def format_price(amount: int) -> str:
    return f"{amount:,} FCFA".replace(",", " ")


def render_product_card(product, key_prefix: str):
    cols = st.columns([5, 2, 2, 2, 1])
    with cols[0]:
        st.markdown(f"**{product.name}**")
        st.caption(product.category)
    with cols[1]:
        st.write(format_price(product.price))
        if product.original_price and product.original_price > product.price:
            st.caption(f"~~{format_price(product.original_price)}~~")
    with cols[2]:
        size = st.selectbox(
            "Taille", product.sizes or ("One Size",), key=f"{key_prefix}_size_{product.id}"
        )
    with cols[3]:
        color = st.selectbox(
            "Couleur", product.colors or ("noir",), key=f"{key_prefix}_color_{product.id}"
        )
        if st.button("🛒 Ajouter", key=f"{key_prefix}_add_{product.id}"):
            shop.cart.add_item(
                CartLine(
                    product_id=product.id,
                    name=product.name,
                    price=product.price,
                    size=size,
                    color=color,
                    original_price=product.original_price,
                    image=product.image_url,
                )
            )
            st.success(f"✅ {product.name} ajouté au panier")
    with cols[4]:
        heart = "❤️" if shop.favorites.is_favorite(product.id) else "🤍"
        if st.button(heart, key=f"{key_prefix}_fav_{product.id}"):
            shop.favorites.toggle(product.id)
            st.rerun()


# ============ HEADER ============
st.title("🛍️ SIGGIL")
st.caption("Streetwear - Dakar")

# ============ SIDEBAR ============
with st.sidebar:
    st.header("📂 Navigation")
    page = st.radio(
        "Section :",
        [
            "🏠 Accueil",
            "🏪 Boutique",
            "⭐ Premium",
            "🛒 Panier",
            "💳 Commande",
            "📦 Mes commandes",
            "🔐 Admin",
        ],
        label_visibility="collapsed",
    )
    st.divider()
    st.metric("Articles au panier", shop.cart.item_count)
    st.metric("Favoris", shop.favorites.count())


# ============ PAGE: ACCUEIL ============
if page == "🏠 Accueil":
    timeout = shop.settings.fetch_timeout
    categories, cat_fallback = run_sync(
        load_home_categories(shop.category_service, timeout)
    )
    featured, prod_fallback = run_sync(load_featured_products(shop.product_service, timeout))

    if cat_fallback or prod_fallback:
        st.warning("Connexion lente : affichage d'une sélection par défaut.")

    st.subheader("Catégories populaires")
    cols = st.columns(max(len(categories), 1))
    for col, category in zip(cols, categories):
        with col:
            st.markdown(f"**{category.name}**")
            st.caption(f"{category.product_count} produits")

    st.divider()
    st.subheader("Produits populaires")
    for product in featured:
        render_product_card(product, "home")


# ============ PAGE: BOUTIQUE ============
elif page == "🏪 Boutique":
    catalog = shop.catalog
    if catalog.error:
        st.error(catalog.error)

    term = st.text_input("🔍 Rechercher", value=catalog.state.filters.search)
    if term:
        st.caption(", ".join(p.name for p in catalog.typeahead(term)))

    col1, col2, col3, col4 = st.columns(4)
    with col1:
        category = st.selectbox(
            "Catégorie", [ALL_CATEGORIES] + list(catalog.available_categories())
        )
    with col2:
        size = st.selectbox("Taille", ["all"] + list(VALID_SIZES))
    with col3:
        sort_by = st.selectbox("Trier par", ["name", "price", "date", "popularity"])
    with col4:
        sort_order = st.radio("Ordre", ["asc", "desc"], horizontal=True)

    if category != catalog.state.filters.category:
        run_sync(catalog.filter_by_category(category))
    if sort_by == "popularity" and not catalog.state.popularity:
        run_sync(catalog.load_popularity())
    catalog.set_filters(search=term, size=size, sort_by=sort_by, sort_order=sort_order)

    if st.button("Réinitialiser les filtres"):
        catalog.reset_filters()
        st.rerun()

    products = catalog.filtered
    st.info(f"🔍 {len(products)} produit(s)")
    if not products:
        st.warning("Aucun produit ne correspond à votre recherche.")
    for product in products:
        render_product_card(product, "shop")
        st.divider()


# ============ PAGE: PREMIUM ============
elif page == "⭐ Premium":
    st.header("⭐ Espace Premium")
    premium = shop.premium

    if not premium.has_access:
        with st.form("premium_code"):
            code = st.text_input("Code d'accès")
            phone = st.text_input("Téléphone")
            if st.form_submit_button("Valider"):
                result = run_sync(premium.verify_premium_code(code, phone))
                if result.is_left:
                    st.error(result.value[0])
                else:
                    st.rerun()
    else:
        st.success("Accès premium actif")
        products = run_sync(shop.catalog.load_premium_products(premium.has_access))
        if not products:
            st.info("Aucun produit premium pour le moment.")
        for product in products:
            render_product_card(product, "premium")
            st.divider()


# ============ PAGE: PANIER ============
elif page == "🛒 Panier":
    st.header("🛒 Votre panier")
    cart = shop.cart

    if not cart.lines:
        st.info("Votre panier est vide.")
    else:
        for line in cart.lines:
            cols = st.columns([5, 2, 2, 2, 1])
            with cols[0]:
                st.write(f"**{line.name}**")
                st.caption(f"{line.size} / {line.color}")
            with cols[1]:
                qty = st.number_input(
                    "Qté",
                    min_value=0,
                    value=line.quantity,
                    key=f"qty_{'_'.join(line.key)}",
                    label_visibility="collapsed",
                )
                if qty != line.quantity:
                    cart.update_quantity(*line.key, qty)
                    st.rerun()
            with cols[2]:
                st.write(format_price(line.price))
            with cols[3]:
                st.write(format_price(line.subtotal))
            with cols[4]:
                if st.button("🗑️", key=f"remove_{'_'.join(line.key)}"):
                    cart.remove_item(*line.key)
                    st.rerun()

        st.divider()
        st.markdown(f"### Total : **{format_price(cart.total)}**")
        if st.button("Vider le panier"):
            cart.clear_cart()
            st.rerun()


# ============ PAGE: COMMANDE ============
elif page == "💳 Commande":
    st.header("💳 Finaliser la commande")
    cart = shop.cart
    payment = shop.payment

    if payment.state.status == "success":
        st.success(f"🎉 Commande confirmée : **{payment.state.order_id}**")
        if st.button("Nouvelle commande"):
            payment.reset_payment()
            st.rerun()
    elif not cart.lines:
        st.info("Votre panier est vide.")
    else:
        user = shop.auth.user
        with st.form("checkout"):
            first_name = st.text_input("Prénom", value=user.first_name if user else "")
            last_name = st.text_input("Nom", value=user.last_name if user else "")
            phone = st.text_input("Téléphone", value=user.phone if user else "")
            address = st.text_input("Adresse", value=user.address if user else "")
            city = st.text_input("Ville", value=user.city if user else "Dakar")
            method = st.radio(
                "Moyen de paiement",
                [m.id for m in PAYMENT_METHODS],
                format_func=lambda mid: next(m.name for m in PAYMENT_METHODS if m.id == mid),
            )
            submitted = st.form_submit_button(
                f"Payer {format_price(cart.total)}", type="primary"
            )

        if submitted:
            form = BuyerInfoPayload(
                first_name=first_name,
                last_name=last_name,
                phone=phone,
                address=address,
                city=city,
            )
            checked = validate_checkout(form)
            if checked.is_left:
                for error in checked.value:
                    st.error(error)
            else:
                payment.select_payment_method(method)
                with st.spinner("Paiement en cours..."):
                    state = run_sync(
                        payment.process_payment(
                            cart.total,
                            phone,
                            BuyerInfo(**form.model_dump()),
                            cart.lines,
                            address,
                            city,
                            user.id if user else None,
                        )
                    )
                if state.status == "success":
                    cart.clear_cart()
                    st.rerun()
                else:
                    st.error(state.error)


# ============ PAGE: MES COMMANDES ============
elif page == "📦 Mes commandes":
    st.header("📦 Mes commandes")
    history = shop.orders

    with st.form("track_order"):
        order_id = st.text_input("Numéro de commande", placeholder="SIGGIL-...")
        if st.form_submit_button("Suivre"):
            run_sync(history.track_order(order_id))

    tracked = history.state.tracked
    if tracked is not None:
        st.info(f"**{tracked.id}** · {tracked.status} · {format_price(tracked.total)}")
        if tracked.tracking_info:
            st.caption(str(tracked.tracking_info))

    st.divider()
    user = shop.auth.user
    if user is None:
        with st.form("customer_login"):
            phone = st.text_input("Téléphone")
            if st.form_submit_button("Se connecter"):
                result = run_sync(shop.auth.login(phone))
                if result.is_left:
                    st.error(result.value[0])
                else:
                    st.rerun()
    else:
        st.caption(f"{user.first_name} {user.last_name} · {user.phone}")
        if st.button("Déconnexion", key="customer_logout"):
            shop.auth.logout()
            st.rerun()
        for order in run_sync(history.load_user_orders(user)):
            cols = st.columns([4, 2, 2])
            with cols[0]:
                st.write(f"**{order.id}**")
                st.caption(order.created_at)
            with cols[1]:
                st.write(format_price(order.total))
            with cols[2]:
                st.write(order.status)

    if history.state.error:
        st.error(history.state.error)


# ============ PAGE: ADMIN ============
elif page == "🔐 Admin":
    admin = shop.admin

    if not admin.is_authenticated:
        st.header("🔐 Connexion administrateur")
        with st.form("admin_login"):
            phone = st.text_input("Téléphone")
            password = st.text_input("Mot de passe", type="password")
            if st.form_submit_button("Se connecter"):
                result = run_sync(admin.admin_login(phone, password))
                if result.is_left:
                    st.error(result.value[0])
                else:
                    st.rerun()
    else:
        st.header(f"📊 Tableau de bord - {admin.state.session.username}")
        if st.button("Déconnexion"):
            admin.admin_logout()
            st.rerun()

        report = run_sync(refresh_admin_dashboard(admin))
        stats = report["dashboard"]

        col1, col2, col3, col4 = st.columns(4)
        with col1:
            st.metric("🧾 Commandes", stats["total_orders"])
        with col2:
            st.metric("💰 Chiffre d'affaires", format_price(stats["total_revenue"]))
        with col3:
            st.metric("👥 Clients", stats["total_customers"])
        with col4:
            st.metric("⚠️ Stock faible", stats["low_stock_products"])

        if stats["customers_by_city"]:
            st.bar_chart(stats["customers_by_city"])

        tab1, tab2, tab3, tab4 = st.tabs(
            ["🧾 Commandes", "📦 Produits", "📂 Catégories", "⭐ Premium"]
        )

        with tab1:
            status_filter = st.selectbox("Statut", ("tous",) + ORDER_STATUSES)
            orders = (
                admin.state.orders
                if status_filter == "tous"
                else tuple(iter_orders_by_status(admin.state.orders, status_filter))
            )
            for order in orders:
                cols = st.columns([4, 2, 3, 1])
                with cols[0]:
                    st.write(f"**{order.id}** - {order.buyer.first_name} {order.buyer.last_name}")
                    st.caption(f"{order.city} · {order.buyer.phone}")
                with cols[1]:
                    st.write(format_price(order.total))
                with cols[2]:
                    new_status = st.selectbox(
                        "Statut",
                        ORDER_STATUSES,
                        index=ORDER_STATUSES.index(order.status),
                        key=f"status_{order.id}",
                        label_visibility="collapsed",
                    )
                    if new_status != order.status:
                        run_sync(admin.update_order_status(order.id, new_status))
                        st.rerun()
                with cols[3]:
                    if st.button("🗑️", key=f"del_order_{order.id}"):
                        run_sync(admin.delete_order(order.id))
                        st.rerun()

        with tab2:
            st.dataframe(report["popular_products"])
            with st.form("new_product"):
                name = st.text_input("Nom")
                names = [c.name for c in admin.state.categories] or list(DEFAULT_CATEGORIES)
                category = st.selectbox("Catégorie", names)
                price = st.number_input("Prix", min_value=0, value=5000, step=500)
                stock = st.number_input("Stock", min_value=0, value=10)
                sizes = st.multiselect("Tailles", VALID_SIZES)
                colors = st.multiselect("Couleurs", VALID_COLORS)
                is_new = st.checkbox("Nouveauté")
                if st.form_submit_button("Ajouter le produit"):
                    created = run_sync(
                        admin.add_product(
                            ProductCreate(
                                name=name,
                                category=category,
                                price=int(price),
                                stock=int(stock),
                                sizes=sizes,
                                colors=colors,
                                is_new=is_new,
                            )
                        )
                    )
                    if created.is_left:
                        for error in created.value:
                            st.error(error)
                    else:
                        st.rerun()

            for product in admin.state.products:
                cols = st.columns([5, 2, 2, 1])
                with cols[0]:
                    st.write(f"**{product.name}** ({product.category})")
                with cols[1]:
                    st.write(f"Stock : {product.stock}")
                with cols[2]:
                    label = "Désactiver" if product.is_active else "Activer"
                    if st.button(label, key=f"toggle_{product.id}"):
                        run_sync(admin.toggle_product_active(product.id))
                        st.rerun()
                with cols[3]:
                    if st.button("🗑️", key=f"del_product_{product.id}"):
                        run_sync(admin.delete_product(product.id))
                        st.rerun()

        with tab3:
            with st.form("new_category"):
                cat_name = st.text_input("Nom de la catégorie")
                sort_order = st.number_input("Ordre", value=0)
                if st.form_submit_button("Créer"):
                    created = run_sync(
                        admin.create_category(
                            CategoryCreate(name=cat_name, sort_order=int(sort_order))
                        )
                    )
                    if created.is_left:
                        st.error(created.value[0])
                    else:
                        st.rerun()

            for category in admin.state.categories:
                cols = st.columns([5, 2, 2, 1])
                with cols[0]:
                    st.write(f"**{category.name}** · {category.product_count} produits")
                with cols[1]:
                    position = st.number_input(
                        "Ordre",
                        value=category.sort_order,
                        key=f"order_{category.id}",
                        label_visibility="collapsed",
                    )
                    if position != category.sort_order:
                        run_sync(admin.reorder_category(category.id, int(position)))
                        st.rerun()
                with cols[2]:
                    label = "Désactiver" if category.is_active else "Activer"
                    if st.button(label, key=f"toggle_cat_{category.id}"):
                        run_sync(admin.toggle_category_active(category.id))
                        st.rerun()
                with cols[3]:
                    if st.button("🗑️", key=f"del_cat_{category.id}"):
                        run_sync(admin.delete_category(category.id))
                        st.rerun()

        with tab4:
            for request in admin.state.premium_requests:
                cols = st.columns([5, 2, 2])
                with cols[0]:
                    st.write(f"**{request.name}** · {request.phone} · {request.status}")
                    if request.code:
                        st.caption(f"Code : {request.code}")
                if request.status == "pending":
                    with cols[1]:
                        if st.button("Approuver", key=f"approve_{request.id}"):
                            run_sync(admin.approve_premium_request(request.id))
                            st.rerun()
                    with cols[2]:
                        if st.button("Refuser", key=f"reject_{request.id}"):
                            run_sync(admin.reject_premium_request(request.id))
                            st.rerun()

        if admin.state.error:
            st.error(admin.state.error)
